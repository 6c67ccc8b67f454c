"""
Enumeration types for the Cloudflare gateway.

These enums provide type-safe constants for log levels, authentication
schemes, provider error codes, and resource option lists.
"""

from enum import Enum, IntEnum


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]


_LEVEL_RANK = {
    LogLevel.DEBUG: 10,
    LogLevel.INFO: 20,
    LogLevel.WARN: 30,
    LogLevel.ERROR: 40,
}


class AuthScheme(Enum):
    """Authentication scheme attached to outgoing requests."""

    TOKEN = "token"
    API_KEY = "api_key"
    NONE = "none"


class ProviderErrorCode(IntEnum):
    """Provider error codes the gateway treats specially."""

    # "could not find entrypoint ruleset": the phase has no ruleset yet
    ENTRYPOINT_NOT_FOUND = 10003


class RulesetPhase(Enum):
    """Ruleset phases managed through the entrypoint API."""

    CACHE_SETTINGS = "http_request_cache_settings"
    FIREWALL_CUSTOM = "http_request_firewall_custom"


class DnsRecordType(Enum):
    """DNS record types accepted by the provider."""

    A = "A"
    AAAA = "AAAA"
    CNAME = "CNAME"
    MX = "MX"
    TXT = "TXT"
    NS = "NS"
    SRV = "SRV"
    CAA = "CAA"
    PTR = "PTR"
    LOC = "LOC"
    CERT = "CERT"
    DNSKEY = "DNSKEY"
    DS = "DS"
    HTTPS = "HTTPS"
    NAPTR = "NAPTR"
    SMIMEA = "SMIMEA"
    SSHFP = "SSHFP"
    SVCB = "SVCB"
    TLSA = "TLSA"
    URI = "URI"

    def supports_proxy(self) -> bool:
        return self in (DnsRecordType.A, DnsRecordType.AAAA, DnsRecordType.CNAME)

    def requires_priority(self) -> bool:
        return self in (DnsRecordType.MX, DnsRecordType.SRV, DnsRecordType.URI)


class FirewallMode(Enum):
    """Action taken by an access or user-agent rule."""

    BLOCK = "block"
    CHALLENGE = "challenge"
    WHITELIST = "whitelist"
    JS_CHALLENGE = "js_challenge"


class PageRuleStatus(Enum):
    """Page rule status."""

    ACTIVE = "active"
    DISABLED = "disabled"


class AnalyticsDaysRange(IntEnum):
    """Supported analytics look-back windows in days."""

    LAST_24_HOURS = 1
    LAST_7_DAYS = 7
    LAST_30_DAYS = 30
    LAST_90_DAYS = 90

    @classmethod
    def default(cls) -> "AnalyticsDaysRange":
        return cls.LAST_24_HOURS
