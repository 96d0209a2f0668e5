"""Shared fixtures: an in-memory libvirt connection speaking the binding's API."""
import uuid as uuidlib
import xml.etree.ElementTree as ET

import libvirt
import pytest

from virtsecret.secrets.domains.connection import SecretConnection

SCENARIO_UUID = "c5a9a4e0-3b1d-4c9e-8f2a-1234567890ab"
SCENARIO_XML = f"""<secret ephemeral='no' private='yes'>
  <uuid>{SCENARIO_UUID}</uuid>
  <usage type='volume'>
    <volume>vol1</volume>
  </usage>
</secret>"""

_USAGE_CODES = {
    "volume": libvirt.VIR_SECRET_USAGE_TYPE_VOLUME,
    "ceph": libvirt.VIR_SECRET_USAGE_TYPE_CEPH,
    "iscsi": libvirt.VIR_SECRET_USAGE_TYPE_ISCSI,
    "tls": libvirt.VIR_SECRET_USAGE_TYPE_TLS,
    "vtpm": libvirt.VIR_SECRET_USAGE_TYPE_VTPM,
}
_USAGE_ID_ELEMENTS = {"volume": "volume", "ceph": "name", "iscsi": "target", "tls": "name", "vtpm": "name"}


class FakeVirSecret:
    """Stands in for libvirt.virSecret; shares its record with the connection."""

    def __init__(self, conn, record):
        self._conn = conn
        self._record = record

    def _check_defined(self):
        if self._record["uuid"] not in self._conn.secrets:
            self._conn.fail(f"Secret not found: no secret with matching uuid '{self._record['uuid']}'")

    def UUIDString(self):
        return self._record["uuid"]

    def usageType(self):
        return self._record["usage_type"]

    def usageID(self):
        return self._record["usage_id"]

    def XMLDesc(self, flags=0):
        self._conn.calls.append(("XMLDesc", flags))
        return self._record["xml"]

    def setValue(self, value, flags=0):
        self._conn.calls.append(("setValue", flags))
        self._check_defined()
        self._record["value"] = bytes(value)
        return 0

    def value(self, flags=0):
        self._conn.calls.append(("value", flags))
        self._check_defined()
        if self._record["value"] is None:
            self._conn.fail("secret does not have a value")
        return self._record["value"]

    def undefine(self):
        self._check_defined()
        del self._conn.secrets[self._record["uuid"]]
        return 0


class FakeLibvirtConnection:
    """Stands in for libvirt.virConnect, implementing only the secret API."""

    def __init__(self):
        self.secrets = {}
        self.calls = []
        self.closed = False
        self._last_error = None

    def fail(self, message, code=libvirt.VIR_ERR_NO_SECRET):
        self._last_error = (code, libvirt.VIR_FROM_SECRET, message, libvirt.VIR_ERR_ERROR,
                            None, None, None, 0, 0)
        raise libvirt.libvirtError(message)

    def virConnGetLastError(self):
        return self._last_error

    def close(self):
        self.closed = True
        return 0

    def numOfSecrets(self):
        return len(self.secrets)

    def listSecrets(self):
        return list(self.secrets)

    def secretLookupByUUIDString(self, uuid):
        if uuid not in self.secrets:
            self.fail(f"Secret not found: no secret with matching uuid '{uuid}'")
        return FakeVirSecret(self, self.secrets[uuid])

    def secretLookupByUsage(self, usageType, usageID):
        for record in self.secrets.values():
            if record["usage_type"] == usageType and record["usage_id"] == usageID:
                return FakeVirSecret(self, record)
        self.fail(f"Secret not found: no secret with matching usage '{usageID}'")

    def secretDefineXML(self, xml, flags=0):
        self.calls.append(("secretDefineXML", flags))
        try:
            root = ET.fromstring(xml)
        except ET.ParseError as e:
            self.fail(f"XML error: {e}", code=libvirt.VIR_ERR_XML_ERROR)
        if root.tag != "secret":
            self.fail(f"unexpected root element <{root.tag}>, expecting <secret>",
                      code=libvirt.VIR_ERR_XML_ERROR)

        secret_uuid = root.findtext("uuid") or str(uuidlib.uuid4())
        usage = root.find("usage")
        if usage is None:
            usage_type, usage_id = libvirt.VIR_SECRET_USAGE_TYPE_NONE, None
        else:
            kind = usage.get("type")
            if kind not in _USAGE_CODES:
                self.fail(f"unknown secret usage type {kind}", code=libvirt.VIR_ERR_XML_ERROR)
            usage_type = _USAGE_CODES[kind]
            usage_id = (usage.findtext(_USAGE_ID_ELEMENTS[kind]) or "").strip()

        record = self.secrets.get(secret_uuid) or {"uuid": secret_uuid, "value": None}
        record.update(usage_type=usage_type, usage_id=usage_id, xml=xml)
        self.secrets[secret_uuid] = record
        return FakeVirSecret(self, record)


@pytest.fixture
def libvirt_conn():
    return FakeLibvirtConnection()


@pytest.fixture
def conn(libvirt_conn):
    """SecretConnection borrowing the fake libvirt connection."""
    return SecretConnection(libvirt_conn)


@pytest.fixture
def scenario_uuid(libvirt_conn):
    """One volume secret 'vol1' holding bytes 01 02 03."""
    fake = libvirt_conn.secretDefineXML(SCENARIO_XML)
    fake.setValue(b"\x01\x02\x03")
    libvirt_conn.calls.clear()
    return SCENARIO_UUID
