"""
Property-based tests for the audit logger.

Covers credential masking, HMAC signing, level filtering and output formats.
"""

import json
from io import StringIO

from hypothesis import assume, given, settings
from hypothesis import strategies as st

from cloudflare_gateway.audit_logger import AuditLogger, create_logger
from cloudflare_gateway.enums import LogLevel
from cloudflare_gateway.exceptions import ApiError


@st.composite
def component_name_strategy(draw) -> str:
    """Generate valid component names."""
    return draw(st.text(
        alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz_"),
        min_size=1,
        max_size=30,
    ))


@st.composite
def message_strategy(draw) -> str:
    """Generate printable log messages."""
    return draw(st.text(
        alphabet=st.characters(
            whitelist_categories=('L', 'N', 'P', 'S', 'Z'),
            blacklist_characters='\x00\n\r',
        ),
        min_size=1,
        max_size=100,
    ))


@st.composite
def non_sensitive_key_strategy(draw) -> str:
    key = draw(st.text(alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz_"), min_size=1, max_size=20))
    for pattern in AuditLogger.SENSITIVE_KEYS:
        assume(pattern not in key)
    return key


sensitive_key_strategy = st.sampled_from([
    "Authorization", "X-Auth-Key", "X-Auth-Email", "cloudflare_api_key", "cloudflare_token",
    "api_token", "client_secret", "password", "encryption_key", "audit_signing_key", "email",
])


def _logger(**kwargs) -> AuditLogger:
    return AuditLogger(output_stream=StringIO(), **kwargs)


class TestMaskingProperty:
    """Credentials never reach stored entries or the output stream."""

    @given(key=sensitive_key_strategy, value=st.text(min_size=1, max_size=40))
    @settings(max_examples=100)
    def test_sensitive_values_are_masked(self, key: str, value: str) -> None:
        stream = StringIO()
        logger = AuditLogger(output_format="json", output_stream=stream)

        entry = logger.info("client", "Sending request", {key: value})

        assert entry.data[key] == AuditLogger.MASK_VALUE
        written = json.loads(stream.getvalue())
        assert written["data"][key] == AuditLogger.MASK_VALUE

    @given(key=non_sensitive_key_strategy(), value=st.text(max_size=40))
    @settings(max_examples=100)
    def test_other_values_are_kept(self, key: str, value: str) -> None:
        entry = _logger().info("client", "Sending request", {key: value})

        assert entry.data[key] == value

    def test_nested_headers_are_masked(self) -> None:
        data = {
            "request": {"headers": {"Authorization": "Bearer abc", "Accept": "application/json"}},
            "attempts": [{"x-auth-key": "k", "status": 500}],
        }

        entry = _logger().info("client", "Request", data)

        assert entry.data["request"]["headers"] == {
            "Authorization": AuditLogger.MASK_VALUE,
            "Accept": "application/json",
        }
        assert entry.data["attempts"] == [{"x-auth-key": AuditLogger.MASK_VALUE, "status": 500}]

    def test_input_is_not_mutated(self) -> None:
        data = {"token": "abc"}

        _logger().info("client", "Request", data)

        assert data == {"token": "abc"}


class TestSigningProperty:
    """Signed entries verify until edited."""

    @given(component=component_name_strategy(), message=message_strategy())
    @settings(max_examples=100)
    def test_signed_entries_verify(self, component: str, message: str) -> None:
        logger = _logger()
        logger.enable_audit_mode("signing-key")

        entry = logger.info(component, message, {"zone_id": "z1"})

        assert entry.signature is not None
        assert logger.verify_signature(entry)

    @given(message=message_strategy())
    @settings(max_examples=50)
    def test_edited_entries_fail(self, message: str) -> None:
        logger = _logger()
        logger.enable_audit_mode("signing-key")
        entry = logger.info("gateway", "original")

        assume(message != "original")
        entry.message = message

        assert not logger.verify_signature(entry)

    def test_unsigned_entries_do_not_verify(self) -> None:
        logger = _logger()
        entry = logger.info("gateway", "message")

        logger.enable_audit_mode("signing-key")

        assert entry.signature is None
        assert not logger.verify_signature(entry)

    def test_disable_audit_mode(self) -> None:
        logger = _logger()
        logger.enable_audit_mode("signing-key")
        logger.disable_audit_mode()

        assert not logger.audit_mode
        assert logger.info("gateway", "message").signature is None


class TestLevelFilterProperty:
    @given(entry_level=st.sampled_from(list(LogLevel)), min_level=st.sampled_from(list(LogLevel)))
    @settings(max_examples=50)
    def test_entries_below_min_level_are_dropped(self, entry_level: LogLevel, min_level: LogLevel) -> None:
        stream = StringIO()
        logger = AuditLogger(output_stream=stream, min_level=min_level)

        entry = logger.log(entry_level, "gateway", "message")

        if entry_level.rank >= min_level.rank:
            assert entry is not None
            assert len(logger.entries) == 1
        else:
            assert entry is None
            assert logger.entries == []
            assert stream.getvalue() == ""


class TestErrorEntries:
    def test_log_error_carries_request_context(self) -> None:
        logger = _logger()
        error = ApiError("Invalid zone", errors=[{"code": 1001, "message": "Invalid zone"}], error_code=1001)

        entry = logger.log_error("dns", "Call failed", error=error, method="GET", path="/zones/x", status_code=400)

        assert entry.level is LogLevel.ERROR
        assert entry.data["error_type"] == "ApiError"
        assert entry.data["error_code"] == "api_error"
        assert entry.data["method"] == "GET"
        assert entry.data["path"] == "/zones/x"
        assert entry.data["status_code"] == 400


class TestFormats:
    def test_text_format(self) -> None:
        logger = _logger()
        entry = logger.info("cache_purge", "Cache purged", {"zone_id": "z1"})

        text = logger.format_text(entry)

        assert "INFO [cache_purge] Cache purged" in text
        assert '"zone_id": "z1"' in text

    def test_both_writes_two_lines(self) -> None:
        stream = StringIO()
        logger = AuditLogger(output_format="both", output_stream=stream)

        logger.warning("retry_manager", "Retrying request")

        lines = stream.getvalue().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["level"] == "warn"
        assert "WARN [retry_manager]" in lines[1]

    def test_create_logger(self) -> None:
        logger = create_logger("debug", "json", audit_signing_key="k", output_stream=StringIO())

        assert logger.min_level is LogLevel.DEBUG
        assert logger.output_format == "json"
        assert logger.audit_mode
