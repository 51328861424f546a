"""Shared fixtures: a mocked libvirt connection and quiet logging."""

from unittest.mock import MagicMock

import libvirt
import pytest
from loguru import logger

from libvirt_vm_helper.config import Config
from libvirt_vm_helper.libvirt_client import LibvirtClient


def libvirt_error(message, code=None):
    """Build a libvirtError, optionally carrying a libvirt error code."""
    error = libvirt.libvirtError(message)
    error.err = None
    if code is not None:
        error.err = (code, 0, message, libvirt.VIR_ERR_ERROR, "", None, None, -1, -1)
    return error


def make_domain(
    name,
    state=libvirt.VIR_DOMAIN_RUNNING,
    max_mem=4096,
    memory=2048,
    vcpus=2,
    cpu_time=500,
    interfaces=None,
):
    """Create a mocked virDomain."""
    domain = MagicMock(spec=libvirt.virDomain)
    domain.name.return_value = name
    domain.UUIDString.return_value = f"00000000-0000-0000-0000-{len(name):012d}"
    domain.info.return_value = [state, max_mem, memory, vcpus, cpu_time]
    domain.interfaceAddresses.return_value = interfaces or {}
    return domain


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep loguru output out of captured test output."""
    logger.remove()
    yield
    logger.remove()


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def connection():
    """A mocked virConnect returned by libvirt.open."""
    return MagicMock(spec=libvirt.virConnect)


@pytest.fixture
def patched_open(monkeypatch, connection):
    opened = MagicMock(return_value=connection)
    monkeypatch.setattr(libvirt, "open", opened)
    monkeypatch.setattr(libvirt, "openReadOnly", opened)
    return opened


@pytest.fixture
def client(config, patched_open):
    """A LibvirtClient connected to the mocked connection."""
    libvirt_client = LibvirtClient(config)
    libvirt_client.connect()
    yield libvirt_client
    libvirt_client.close()
