from packforge.adapters.errors import (
    AdapterError,
    PackNotFoundError,
    PackParseError,
    UnknownRegistryError,
)


def test_adapter_error_str_is_message():
    err = AdapterError("boom", details={"a": 1}, hint="retry")
    assert str(err) == "boom"
    assert err.hint == "retry"


def test_unknown_registry_is_a_not_found_error():
    assert isinstance(UnknownRegistryError("x"), PackNotFoundError)


def test_parse_error_carries_code():
    assert PackParseError("bad").code == "PACK_PARSE_FAILED"
    assert PackParseError("bad", code="PACK_SCHEMA_INVALID").code == "PACK_SCHEMA_INVALID"
