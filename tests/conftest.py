"""Shared fixtures for cookshelf tests."""

import pathlib

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from tests.helpers import write_cookbook


@pytest.fixture
def cookbooks_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """A directory of path cookbooks: app -> (db, web) -> base."""
    root = tmp_path / "cookbooks"
    root.mkdir()
    write_cookbook(root, "base", "1.2.0")
    write_cookbook(root, "db", "2.0.0", {"base": "~> 1.0"})
    write_cookbook(root, "web", "1.1.0", {"base": ">= 1.2"})
    write_cookbook(root, "app", "0.3.0", {"db": "", "web": "~> 1.1"})
    return root


@pytest.fixture
def berksfile_path(tmp_path: pathlib.Path, cookbooks_dir: pathlib.Path) -> pathlib.Path:
    """A Berksfile resolving ``app`` from the local cookbooks directory."""
    path = tmp_path / "Berksfile"
    path.write_text(
        "source 'file://cookbooks'\n"
        "\n"
        "cookbook 'app', path: 'cookbooks/app'\n"
    )
    return path


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    """An RSA key pair for signing Chef Server requests."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def client_key_path(tmp_path: pathlib.Path, rsa_key: rsa.RSAPrivateKey) -> pathlib.Path:
    """``rsa_key`` written as an unencrypted PEM file."""
    path = tmp_path / "client.pem"
    path.write_bytes(
        rsa_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    return path
