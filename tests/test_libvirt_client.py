"""Tests for LibvirtClient against a mocked libvirt connection."""

from unittest.mock import MagicMock

import libvirt
import pytest

from conftest import libvirt_error, make_domain
from libvirt_vm_helper.config import Config
from libvirt_vm_helper.exceptions import (
    LibvirtConnectionError,
    LibvirtOperationError,
    LibvirtPermissionError,
    LibvirtResourceNotFoundError,
)
from libvirt_vm_helper.libvirt_client import LibvirtClient
from libvirt_vm_helper.models import DomainReference, VirtualMachineStatus


class TestConnection:
    """Opening and releasing the connection."""

    def test_connect_uses_configured_uri(self, config, patched_open, connection):
        client = LibvirtClient(config)
        client.connect()

        patched_open.assert_called_once_with("qemu:///system")
        assert client.connected

    def test_connect_is_idempotent(self, client, patched_open):
        client.connect()
        assert patched_open.call_count == 1

    def test_connect_failure(self, config, monkeypatch):
        monkeypatch.setattr(libvirt, "open", MagicMock(side_effect=libvirt_error("no socket")))

        client = LibvirtClient(config)
        with pytest.raises(LibvirtConnectionError, match="failed to connect: no socket"):
            client.connect()
        assert not client.connected

    def test_readonly_connection(self, monkeypatch, connection):
        open_rw = MagicMock()
        open_ro = MagicMock(return_value=connection)
        monkeypatch.setattr(libvirt, "open", open_rw)
        monkeypatch.setattr(libvirt, "openReadOnly", open_ro)

        client = LibvirtClient(Config(libvirt={"readonly": True}))
        client.connect()

        open_ro.assert_called_once_with("qemu:///system")
        open_rw.assert_not_called()

    def test_context_manager_closes(self, config, patched_open, connection):
        with LibvirtClient(config) as client:
            assert client.connected
        connection.close.assert_called_once_with()
        assert not client.connected

    def test_context_manager_closes_on_error(self, config, patched_open, connection):
        with pytest.raises(RuntimeError):
            with LibvirtClient(config):
                raise RuntimeError("boom")
        connection.close.assert_called_once_with()

    def test_close_twice(self, client, connection):
        client.close()
        client.close()
        connection.close.assert_called_once_with()

    def test_close_error_is_logged_not_raised(self, client, connection):
        connection.close.side_effect = libvirt_error("already gone")
        client.close()
        assert not client.connected

    def test_operation_without_connection(self, config):
        client = LibvirtClient(config)
        with pytest.raises(LibvirtConnectionError, match="Not connected"):
            client.start("testbox")


class TestDomainOperations:
    """Lifecycle calls on a looked-up domain."""

    def test_get_state(self, client, connection):
        connection.lookupByName.return_value = make_domain("testbox")

        info = client.get_state("testbox")

        connection.lookupByName.assert_called_once_with("testbox")
        assert info.state == VirtualMachineStatus.RUNNING
        assert info.max_memory_bytes == 4194304
        assert info.memory_bytes == 2097152
        assert info.cpu_time == 500
        assert info.cpu_count == 2

    def test_get_state_twice_is_identical(self, client, connection):
        connection.lookupByName.return_value = make_domain("testbox")
        assert client.get_state("testbox") == client.get_state("testbox")

    @pytest.mark.parametrize(
        "method, domain_call, args",
        [
            ("start", "create", ()),
            ("shutoff", "destroy", ()),
            ("shutdown", "shutdown", ()),
            ("soft_reboot", "reboot", (libvirt.VIR_DOMAIN_REBOOT_DEFAULT,)),
            ("hard_reboot", "reset", (0,)),
            ("pause", "suspend", ()),
            ("resume", "resume", ()),
            ("delete", "undefineFlags", (libvirt.VIR_DOMAIN_UNDEFINE_KEEP_NVRAM,)),
        ],
    )
    def test_lifecycle_calls(self, client, connection, method, domain_call, args):
        domain = make_domain("testbox")
        connection.lookupByName.return_value = domain

        getattr(client, method)("testbox")

        connection.lookupByName.assert_called_once_with("testbox")
        getattr(domain, domain_call).assert_called_once_with(*args)

    def test_domain_not_found(self, client, connection):
        connection.lookupByName.side_effect = libvirt_error(
            "Domain not found: no domain with matching name 'ghost'", libvirt.VIR_ERR_NO_DOMAIN
        )
        with pytest.raises(LibvirtResourceNotFoundError, match="Domain not found: ghost"):
            client.start("ghost")

    def test_lookup_other_error(self, client, connection):
        connection.lookupByName.side_effect = libvirt_error("connection reset")
        with pytest.raises(LibvirtOperationError, match="connection reset"):
            client.get_state("testbox")

    def test_operation_rejected(self, client, connection):
        domain = make_domain("testbox")
        domain.resume.side_effect = libvirt_error("Requested operation is not valid: domain is not running")
        connection.lookupByName.return_value = domain

        with pytest.raises(LibvirtOperationError, match="domain is not running") as excinfo:
            client.resume("testbox")
        assert excinfo.value.details == {"operation": "domain.resume", "domain": "testbox"}

    def test_operation_not_allowed(self, client, connection):
        client.config.security.allowed_operations = ["domain.state"]

        with pytest.raises(LibvirtPermissionError, match="domain.delete"):
            client.delete("testbox")
        connection.lookupByName.assert_not_called()

    def test_readonly_blocks_changes(self, monkeypatch, connection):
        monkeypatch.setattr(libvirt, "openReadOnly", MagicMock(return_value=connection))
        with LibvirtClient(Config(libvirt={"readonly": True})) as client:
            with pytest.raises(LibvirtPermissionError):
                client.shutoff("testbox")


class TestDefine:
    """Defining domains from XML."""

    def test_define_from_xml(self, client, connection):
        connection.defineXML.return_value = make_domain("fresh")

        reference = client.define_from_xml("<domain/>")

        connection.defineXML.assert_called_once_with("<domain/>")
        assert reference == DomainReference(name="fresh", uuid="00000000-0000-0000-0000-000000000005")

    def test_define_failure(self, client, connection):
        connection.defineXML.side_effect = libvirt_error("XML error: missing name")
        with pytest.raises(LibvirtOperationError, match="missing name"):
            client.define_from_xml("<domain/>")


class TestEnumeration:
    """Listing domains and their addresses."""

    def test_list_flags(self, client, connection):
        connection.listAllDomains.return_value = []

        client.list_running_domains()
        client.list_active_domains()
        client.list_inactive_domains()

        assert [c.args for c in connection.listAllDomains.call_args_list] == [
            (libvirt.VIR_CONNECT_LIST_DOMAINS_RUNNING,),
            (libvirt.VIR_CONNECT_LIST_DOMAINS_ACTIVE,),
            (libvirt.VIR_CONNECT_LIST_DOMAINS_INACTIVE,),
        ]

    def test_list_failure(self, client, connection):
        connection.listAllDomains.side_effect = libvirt_error("denied")
        with pytest.raises(LibvirtOperationError, match="Failed to list domains"):
            client.list_active_domains()

    def test_domain_state_does_not_look_up(self, client, connection):
        domain = make_domain("archived", state=libvirt.VIR_DOMAIN_SHUTOFF)
        assert client.domain_state(domain).state == VirtualMachineStatus.SHUTOFF
        connection.lookupByName.assert_not_called()

    def test_interface_addresses(self, client):
        domain = make_domain("web", interfaces={
            "lo": {"hwaddr": "00:00:00:00:00:00", "addrs": [{"addr": "127.0.0.1", "prefix": 8, "type": 0}]},
            "eth0": {
                "hwaddr": "52:54:00:12:34:56",
                "addrs": [
                    {"addr": "192.168.122.10", "prefix": 24, "type": 0},
                    {"addr": "fe80::1", "prefix": 64, "type": 1},
                ],
            },
            "eth1": {"hwaddr": "52:54:00:aa:bb:cc", "addrs": None},
        })

        interfaces = client.interface_addresses(domain)

        domain.interfaceAddresses.assert_called_once_with(
            libvirt.VIR_DOMAIN_INTERFACE_ADDRESSES_SRC_AGENT
        )
        assert [i.name for i in interfaces] == ["lo", "eth0", "eth1"]
        assert interfaces[1].addresses == ["192.168.122.10", "fe80::1"]
        assert interfaces[1].hwaddr == "52:54:00:12:34:56"
        assert interfaces[2].addresses == []

    def test_interface_addresses_without_agent(self, client):
        domain = make_domain("web")
        domain.interfaceAddresses.side_effect = libvirt_error("Guest agent is not responding")
        with pytest.raises(LibvirtOperationError, match="Guest agent"):
            client.interface_addresses(domain)
