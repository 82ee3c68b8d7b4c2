"""Parser for Berksfile manifests.

A Berksfile is a small Ruby DSL naming the sources to search and the
cookbooks a project needs::

    source 'https://supermarket.chef.io'
    metadata

    cookbook 'nginx', '~> 2.7'
    cookbook 'mysql', git: 'https://github.com/example/mysql.git', branch: 'main'
    cookbook 'app', path: '../app'

    group :integration do
      cookbook 'test-helpers', github: 'example/test-helpers', tag: 'v1.0.0'
    end

Only these statement forms are understood; any other statement raises
``ParseError`` with its line number. Both ``key: value`` and the older
``:key => value`` option syntax are accepted, and a statement may continue
onto the next line after a trailing comma.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from cookshelf import PUBLIC_SUPERMARKET
from cookshelf.core.dependency.constraints import Constraint, parse_constraint
from cookshelf.core.dependency.models import Requirement, SourceLocation
from cookshelf.exceptions import ParseError
from cookshelf.parsers.metadata import read_metadata

logger = logging.getLogger(__name__)

# Option keys that select where a cookbook comes from.
LOCATION_KEYS = ("path", "git", "github", "chef_server")

# Options refining a git or github location.
GIT_OPTION_KEYS = ("branch", "tag", "ref", "rel", "revision")

# Symbolic names accepted by ``source :name``.
NAMED_SOURCES = {"supermarket": PUBLIC_SUPERMARKET, "opscode": PUBLIC_SUPERMARKET}

# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

_TOKEN_PATTERN = re.compile(
    r"""
    \s*(?:
        (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
      | (?P<key>[A-Za-z_][A-Za-z0-9_]*):(?!:)
      | :(?P<symbol>[A-Za-z_][A-Za-z0-9_]*)
      | (?P<arrow>=>)
      | (?P<comma>,)
      | (?P<paren>[()])
      | (?P<word>[A-Za-z_][A-Za-z0-9_]*)
    )
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class _Token:
    kind: str
    value: str


def _strip_comment(line: str) -> str:
    """Remove a trailing ``#`` comment that is not inside a string."""
    quote = ""
    escaped = False
    for i, ch in enumerate(line):
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif quote:
            if ch == quote:
                quote = ""
        elif ch in "\"'":
            quote = ch
        elif ch == "#":
            return line[:i]
    return line


def _tokenize(text: str, line: int) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    text = text.rstrip()
    while pos < len(text):
        m = _TOKEN_PATTERN.match(text, pos)
        if not m or m.end() == pos:
            raise ParseError(f"unexpected input {text[pos:].strip()!r}", text=text, line=line)
        pos = m.end()
        kind = m.lastgroup or ""
        value = m.group(kind)
        if kind == "paren":
            continue
        if kind == "string":
            value = value[1:-1].replace("\\'", "'").replace('\\"', '"')
        tokens.append(_Token(kind, value))
    return tokens


def _statements(text: str) -> Iterator[tuple[int, str]]:
    """Yield ``(line_number, statement)``, joining lines after a trailing comma."""
    pending = ""
    start = 0
    for number, raw in enumerate(text.splitlines(), start=1):
        line = _strip_comment(raw).strip()
        if not line and not pending:
            continue
        if not pending:
            start = number
        pending = f"{pending} {line}".strip()
        if pending.endswith((",", "\\")):
            pending = pending.rstrip("\\")
            continue
        yield start, pending
        pending = ""
    if pending:
        yield start, pending


def _split_arguments(tokens: list[_Token], line: int) -> tuple[list[_Token], dict[str, str]]:
    """Split statement arguments into positional values and options."""
    positional: list[_Token] = []
    options: dict[str, str] = {}
    chunks: list[list[_Token]] = [[]]
    for tok in tokens:
        if tok.kind == "comma":
            chunks.append([])
        else:
            chunks[-1].append(tok)

    for arg in chunks:
        if not arg:
            raise ParseError("empty argument", line=line)
        if len(arg) == 2 and arg[0].kind == "key" and arg[1].kind in ("string", "symbol"):
            key, value = arg[0].value, arg[1].value
        elif len(arg) == 3 and arg[0].kind == "symbol" and arg[1].kind == "arrow" and arg[2].kind in ("string", "symbol"):
            key, value = arg[0].value, arg[2].value
        elif len(arg) == 1 and arg[0].kind in ("string", "symbol"):
            if options:
                raise ParseError("positional argument after options", line=line)
            positional.append(arg[0])
            continue
        else:
            raise ParseError("malformed argument " + " ".join(t.value for t in arg), line=line)
        if key in options:
            raise ParseError(f"duplicate option {key!r}", line=line)
        options[key] = value
    return positional, options


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class CookbookDef:
    """A ``cookbook`` statement.

    Attributes:
        name: Cookbook name.
        constraint: Version constraint (any version when omitted).
        source: Location override, or None to use the global sources.
        groups: Groups the statement appears in.
        line: Line number of the statement.
    """

    name: str
    constraint: Constraint = field(default_factory=Constraint.any)
    source: SourceLocation | None = None
    groups: list[str] = field(default_factory=list)
    line: int = 0


@dataclass
class Berksfile:
    """A parsed Berksfile."""

    sources: list[SourceLocation] = field(default_factory=list)
    cookbooks: list[CookbookDef] = field(default_factory=list)
    has_metadata: bool = False

    @property
    def groups(self) -> dict[str, list[str]]:
        """Group name -> cookbook names in that group."""
        result: dict[str, list[str]] = {}
        for cb in self.cookbooks:
            for group in cb.groups:
                result.setdefault(group, []).append(cb.name)
        return result

    def get_cookbook(self, name: str) -> CookbookDef | None:
        for cb in self.cookbooks:
            if cb.name == name:
                return cb
        return None

    def get_cookbooks(self, *, only: list[str] | None = None, exclude: list[str] | None = None) -> list[CookbookDef]:
        """Cookbooks filtered by group membership.

        Args:
            only: Keep only cookbooks in at least one of these groups.
            exclude: Drop cookbooks in any of these groups.
        """
        selected = []
        for cb in self.cookbooks:
            if only and not set(cb.groups) & set(only):
                continue
            if exclude and set(cb.groups) & set(exclude):
                continue
            selected.append(cb)
        return selected

    def requirements(
        self,
        base_dir: Path | str = ".",
        *,
        only: list[str] | None = None,
        exclude: list[str] | None = None,
    ) -> list[Requirement]:
        """Top-level requirements, in manifest order.

        ``metadata`` contributes the cookbook in *base_dir* first, pinned to
        that directory. Relative ``path`` locations are made absolute
        against *base_dir*.

        Raises:
            InvalidMetadataError: If ``metadata`` is present but *base_dir*
                holds no readable metadata.
        """
        base = Path(base_dir).resolve()
        reqs: list[Requirement] = []
        if self.has_metadata:
            metadata = read_metadata(base)
            reqs.append(Requirement(metadata.name, source=SourceLocation(type="path", path=str(base))))

        for cb in self.get_cookbooks(only=only, exclude=exclude):
            source = cb.source
            if source is not None and source.type == "path" and not Path(source.path).is_absolute():
                source = SourceLocation(
                    type="path",
                    path=str((base / source.path).resolve()),
                    options=source.options,
                )
            reqs.append(Requirement(cb.name, cb.constraint, source))
        return reqs


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


def _parse_source(positional: list[_Token], options: dict[str, str], line: int) -> SourceLocation:
    if options or len(positional) != 1:
        raise ParseError("source expects exactly one URL or symbol", line=line)
    tok = positional[0]
    if tok.kind == "symbol":
        if tok.value == "chef_server":
            return SourceLocation(type="chef_server")
        if tok.value not in NAMED_SOURCES:
            raise ParseError(f"unknown source :{tok.value}", line=line)
        return SourceLocation(type="supermarket", url=NAMED_SOURCES[tok.value])
    return SourceLocation(type="supermarket", url=tok.value)


def _cookbook_location(name: str, options: dict[str, str], line: int) -> SourceLocation | None:
    kinds = [key for key in LOCATION_KEYS if key in options]
    if len(kinds) > 1:
        raise ParseError(f"cookbook {name} has more than one location ({', '.join(kinds)})", line=line)
    git_opts = {key: options[key] for key in GIT_OPTION_KEYS if key in options}
    extra = {k: v for k, v in options.items() if k not in LOCATION_KEYS and k not in GIT_OPTION_KEYS}
    extra.pop("group", None)

    if not kinds:
        if git_opts:
            raise ParseError(f"cookbook {name}: {', '.join(git_opts)} requires git or github", line=line)
        return None

    kind = kinds[0]
    target = options[kind]
    if kind == "path":
        if git_opts:
            raise ParseError(f"cookbook {name}: {', '.join(git_opts)} cannot be used with path", line=line)
        return SourceLocation.create("path", path=target, options=extra)
    if kind == "chef_server":
        return SourceLocation.create("chef_server", url=target, options=extra)

    ref = git_opts.pop("ref", "") or git_opts.pop("revision", "")
    git_opts.pop("revision", None)
    rel = git_opts.pop("rel", "")
    return SourceLocation.create(kind, url=target, ref=ref, path=rel, options={**extra, **git_opts})


def _parse_cookbook(
    positional: list[_Token], options: dict[str, str], groups: list[str], line: int
) -> CookbookDef:
    if not positional or positional[0].kind != "string":
        raise ParseError("cookbook expects a quoted name", line=line)
    if len(positional) > 2:
        raise ParseError("cookbook takes at most a name and a constraint", line=line)
    name = positional[0].value
    if not name:
        raise ParseError("cookbook name cannot be empty", line=line)

    constraint = Constraint.any()
    if len(positional) == 2:
        try:
            constraint = parse_constraint(positional[1].value)
        except ParseError as exc:
            raise ParseError(f"cookbook {name}: {exc}", text=positional[1].value, line=line) from exc

    all_groups = list(groups)
    if "group" in options and options["group"] not in all_groups:
        all_groups.append(options["group"])
    return CookbookDef(
        name=name,
        constraint=constraint,
        source=_cookbook_location(name, options, line),
        groups=all_groups,
        line=line,
    )


def parse_berksfile(text: str) -> Berksfile:
    """Parse Berksfile text.

    Args:
        text: The manifest contents.

    Returns:
        The parsed ``Berksfile``.

    Raises:
        ParseError: On any malformed statement; the message starts with
            ``line N:``.
    """
    berksfile = Berksfile()
    group_stack: list[list[str]] = []
    seen: dict[str, int] = {}

    for line, statement in _statements(text):
        tokens = _tokenize(statement, line)
        if not tokens:
            continue
        head, args = tokens[0], tokens[1:]
        if head.kind != "word":
            raise ParseError(f"unexpected {head.value!r}", text=statement, line=line)

        directive = head.value
        if directive == "end":
            if args:
                raise ParseError("unexpected tokens after 'end'", line=line)
            if not group_stack:
                raise ParseError("'end' without matching 'group'", line=line)
            group_stack.pop()
            continue

        if directive == "group":
            if not args or args[-1].kind != "word" or args[-1].value != "do":
                raise ParseError("group block must end with 'do'", line=line)
            positional, options = _split_arguments(args[:-1], line)
            if options or not positional:
                raise ParseError("group expects one or more group names", line=line)
            group_stack.append([tok.value for tok in positional])
            continue

        positional, options = _split_arguments(args, line) if args else ([], {})
        current_groups = [g for names in group_stack for g in names]

        if directive == "source":
            berksfile.sources.append(_parse_source(positional, options, line))
        elif directive == "metadata":
            if positional:
                raise ParseError("metadata takes no arguments", line=line)
            berksfile.has_metadata = True
        elif directive == "cookbook":
            cookbook = _parse_cookbook(positional, options, current_groups, line)
            if cookbook.name in seen:
                raise ParseError(
                    f"cookbook {cookbook.name} already defined on line {seen[cookbook.name]}",
                    line=line,
                )
            seen[cookbook.name] = line
            berksfile.cookbooks.append(cookbook)
        else:
            raise ParseError(f"unknown directive {directive!r}", text=statement, line=line)

    if group_stack:
        raise ParseError(f"group {', '.join(group_stack[-1])} is missing 'end'")

    logger.debug(
        "Parsed Berksfile: %d sources, %d cookbooks, metadata=%s",
        len(berksfile.sources),
        len(berksfile.cookbooks),
        berksfile.has_metadata,
    )
    return berksfile


def load_berksfile(path: Path | str) -> Berksfile:
    """Read and parse the Berksfile at *path*.

    Raises:
        ParseError: If the file cannot be read or parsed.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"cannot read {path}: {exc}", text=str(path)) from exc
    return parse_berksfile(text)
