"""
Faults: core types and the WS_* factories.
"""

import pytest

from wshypermedia.faults import (
    ConnectionFault,
    DOMAIN_DEFAULTS,
    Fault,
    FaultDomain,
    ProtocolFault,
    SecurityFault,
    Severity,
    WS_CONNECT_FAILED,
    WS_ELEMENT_NOT_FOUND,
    WS_HANDLER_FAILED,
    WS_INVALID_URL,
    WS_JSON_UNSAFE_KEY,
    WS_MESSAGE_TOO_LARGE,
    WS_NOT_CONNECTED,
    WS_PROTOCOL_VERSION_MISMATCH,
    WS_RECONNECT_EXHAUSTED,
    WS_TOO_MANY_PARTS,
)


# ============================================================================
# Core
# ============================================================================

class TestSeverity:

    def test_values(self):
        assert Severity.INFO == "info"
        assert Severity.WARN == "warn"
        assert Severity.ERROR == "error"
        assert Severity.FATAL == "fatal"


class TestFaultDomain:

    def test_standard_domains(self):
        assert FaultDomain.CONFIG.name == "config"
        assert FaultDomain.PROTOCOL.name == "protocol"
        assert FaultDomain.SECURITY.name == "security"
        assert FaultDomain.NETWORK.name == "network"

    def test_domain_equality(self):
        assert FaultDomain("x") == FaultDomain("x")
        assert FaultDomain("x") != FaultDomain("y")
        assert FaultDomain.SECURITY == "security"

    def test_domain_hashable(self):
        assert FaultDomain("x") in {FaultDomain("x")}

    def test_every_domain_has_defaults(self):
        for domain in (FaultDomain.CONFIG, FaultDomain.PROTOCOL, FaultDomain.SECURITY, FaultDomain.NETWORK):
            assert domain in DOMAIN_DEFAULTS


class TestFault:

    def test_domain_defaults_applied(self):
        f = Fault(code="X", message="m", domain=FaultDomain.NETWORK)
        assert f.severity == Severity.ERROR
        assert f.retryable is True

    def test_explicit_values_win(self):
        f = Fault(code="X", message="m", domain=FaultDomain.NETWORK, severity=Severity.INFO, retryable=False)
        assert f.severity == Severity.INFO
        assert f.retryable is False

    def test_missing_code_rejected(self):
        with pytest.raises(TypeError):
            Fault(message="m", domain=FaultDomain.PROTOCOL)

    def test_str_and_repr(self):
        f = Fault(code="ERR", message="Something wrong", domain=FaultDomain.PROTOCOL)
        assert str(f) == "[ERR] Something wrong"
        assert "ERR" in repr(f)

    def test_is_exception(self):
        with pytest.raises(Fault) as exc_info:
            raise Fault(code="BANG", message="kaboom", domain=FaultDomain.CONFIG)
        assert exc_info.value.code == "BANG"

    def test_to_dict(self):
        f = WS_MESSAGE_TOO_LARGE(200, 100)
        assert f.to_dict() == {
            "code": "WS_MESSAGE_TOO_LARGE",
            "message": "Message too large: 200 characters (limit: 100)",
            "domain": "security",
            "severity": "warn",
            "retryable": False,
            "metadata": {"size": 200, "limit": 100},
        }


# ============================================================================
# Factories
# ============================================================================

class TestFactories:

    def test_connection_faults(self):
        f = WS_INVALID_URL("http://x")
        assert isinstance(f, ConnectionFault)
        assert f.severity == Severity.FATAL
        assert f.retryable is False
        assert f.metadata == {"url": "http://x"}

        assert WS_CONNECT_FAILED("ws://x", "refused").retryable is True
        assert WS_RECONNECT_EXHAUSTED(5).severity == Severity.FATAL
        assert WS_NOT_CONNECTED("closed").severity == Severity.WARN
        assert WS_PROTOCOL_VERSION_MISMATCH("1.1", "wshm.v2.0").metadata["negotiated"] == "wshm.v2.0"

    def test_security_faults_never_fatal(self):
        for fault in (WS_TOO_MANY_PARTS(100), WS_JSON_UNSAFE_KEY("__proto__"), WS_MESSAGE_TOO_LARGE(2, 1)):
            assert isinstance(fault, SecurityFault)
            assert fault.domain == FaultDomain.SECURITY
            assert fault.severity == Severity.WARN

    def test_protocol_faults(self):
        assert isinstance(WS_ELEMENT_NOT_FOUND("x"), ProtocolFault)
        failed = WS_HANDLER_FAILED("boom", "bug")
        assert failed.severity == Severity.ERROR
        assert failed.metadata == {"verb": "boom"}
