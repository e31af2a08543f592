from rtlink.errors import (
    InvalidAddress,
    InvalidHardwareAddress,
    InvalidIp,
    NamespaceError,
    NetlinkError,
    RequestFailed,
    RtnlError,
    UnexpectedMessage,
)


def test_request_failed_message():
    err = RequestFailed()
    assert str(err) == "A netlink request failed"
    assert isinstance(err, RtnlError)


def test_namespace_error_keeps_detail():
    err = NamespaceError("cannot mount")
    assert err.detail == "cannot mount"
    assert str(err) == "Namespace error cannot mount"


def test_netlink_error_keeps_error():
    err = NetlinkError("boom")
    assert err.error == "boom"
    assert str(err).startswith("Received a netlink error message")
    assert "boom" in str(err)


def test_unexpected_message_keeps_message():
    payload = {"kind": "odd"}
    err = UnexpectedMessage(payload)
    assert err.message is payload
    assert str(err).startswith("Received an unexpected message")


def test_invalid_hardware_address():
    err = InvalidHardwareAddress(b"\x01\x02")
    assert err.address == b"\x01\x02"
    assert "invalid hardware address attribute" in str(err)


def test_invalid_ip():
    err = InvalidIp(b"\x07")
    assert err.address == b"\x07"
    assert str(err).startswith("Failed to parse an IP address")


def test_invalid_address_holds_both_parts():
    err = InvalidAddress(b"\x0a\x00", b"\xff")
    assert (err.address, err.mask) == (b"\x0a\x00", b"\xff")
    assert repr(b"\x0a\x00") in str(err)
    assert repr(b"\xff") in str(err)