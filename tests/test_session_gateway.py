"""Tests for token verification and session identity binding."""

import time

import pytest

from canvas_api.adapters.identity.factory import create_token_verifier
from canvas_api.adapters.identity.jwt_verifier import JWTTokenVerifier
from canvas_api.core.config import AuthSettings, settings
from canvas_api.core.errors import (
    AuthenticationAppError,
    SessionClosedAppError,
    ValidationAppError,
)
from canvas_api.services.session_gateway import (
    Session,
    SessionGateway,
    SessionState,
    extract_bearer_token,
    extract_handshake_token,
)

TEST_SECRET = settings.auth.jwt_key


@pytest.fixture
def verifier() -> JWTTokenVerifier:
    return JWTTokenVerifier(key=TEST_SECRET, algorithms=["HS256"])


@pytest.fixture
def gateway(verifier: JWTTokenVerifier) -> SessionGateway:
    return SessionGateway(verifier)


class TestJWTTokenVerifier:
    """Signature, expiry and subject checks."""

    @pytest.mark.asyncio
    async def test_valid_token_returns_subject(self, verifier, token_factory) -> None:
        assert await verifier.verify(token_factory("user_123")) == "user_123"

    @pytest.mark.asyncio
    async def test_wrong_signature_is_invalid(self, verifier, token_factory) -> None:
        token = token_factory("user_123", secret="some-other-secret-of-sufficient-length!!")

        with pytest.raises(AuthenticationAppError) as exc_info:
            await verifier.verify(token)

        assert exc_info.value.code == "invalid_token"
        assert exc_info.value.message == "Authentication error: Invalid token."

    @pytest.mark.asyncio
    async def test_expired_token_is_invalid(self, verifier, token_factory) -> None:
        past = int(time.time()) - 7200
        token = token_factory("user_123", iat=past, exp=past + 60)

        with pytest.raises(AuthenticationAppError) as exc_info:
            await verifier.verify(token)

        assert exc_info.value.code == "invalid_token"

    @pytest.mark.asyncio
    async def test_garbage_token_is_invalid(self, verifier) -> None:
        with pytest.raises(AuthenticationAppError) as exc_info:
            await verifier.verify("not-a-jwt")

        assert exc_info.value.code == "invalid_token"

    @pytest.mark.asyncio
    async def test_missing_subject_is_incomplete(self, verifier, token_factory) -> None:
        with pytest.raises(AuthenticationAppError) as exc_info:
            await verifier.verify(token_factory(None))

        assert exc_info.value.code == "incomplete_token_payload"

    @pytest.mark.asyncio
    async def test_blank_subject_is_incomplete(self, verifier, token_factory) -> None:
        with pytest.raises(AuthenticationAppError) as exc_info:
            await verifier.verify(token_factory("   "))

        assert exc_info.value.code == "incomplete_token_payload"

    @pytest.mark.asyncio
    async def test_audience_is_enforced_when_configured(self, token_factory) -> None:
        verifier = JWTTokenVerifier(key=TEST_SECRET, algorithms=["HS256"], audience="canvas")

        assert await verifier.verify(token_factory("u1", aud="canvas")) == "u1"
        with pytest.raises(AuthenticationAppError):
            await verifier.verify(token_factory("u1", aud="elsewhere"))

    def test_requires_key_material(self) -> None:
        with pytest.raises(ValueError):
            JWTTokenVerifier()


class TestTokenVerifierFactory:
    def test_missing_key_material_raises(self) -> None:
        cfg = AuthSettings()
        cfg.jwt_key = None
        cfg.jwks_url = None

        with pytest.raises(ValidationAppError) as exc_info:
            create_token_verifier(cfg)

        assert exc_info.value.code == "auth_missing_key_material"

    @pytest.mark.asyncio
    async def test_builds_verifier_from_settings(self, token_factory) -> None:
        cfg = AuthSettings()
        cfg.jwt_key = TEST_SECRET
        cfg.jwt_algorithms = "HS256"

        verifier = create_token_verifier(cfg)

        assert await verifier.verify(token_factory("from-settings")) == "from-settings"


class TestTokenExtraction:
    """Where the handshake token is read from."""

    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            ("Bearer   abc  ", "abc"),
            ("Basic abc", None),
            ("Bearer", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract_bearer_token(self, header, expected) -> None:
        assert extract_bearer_token(header) == expected

    def test_header_takes_precedence_over_query(self) -> None:
        token = extract_handshake_token(
            {"authorization": "Bearer from-header"}, {"token": "from-query"}
        )
        assert token == "from-header"

    def test_query_param_used_without_header(self) -> None:
        assert extract_handshake_token({}, {"token": "from-query"}) == "from-query"

    def test_no_token_anywhere(self) -> None:
        assert extract_handshake_token({}, {"token": "  "}) is None


class TestSessionGateway:
    """Session state transitions driven by authentication."""

    @pytest.mark.asyncio
    async def test_authenticate_without_token(self, gateway) -> None:
        with pytest.raises(AuthenticationAppError) as exc_info:
            await gateway.authenticate(None)

        assert exc_info.value.code == "missing_token"
        assert exc_info.value.message == "Authentication error: No token."

    @pytest.mark.asyncio
    async def test_successful_handshake_binds_identity(
        self, gateway, token_factory, transport_factory
    ) -> None:
        session = Session(transport_factory())
        assert session.state is SessionState.CONNECTING

        identity = await gateway.authenticate_session(
            session, {"authorization": f"Bearer {token_factory('user_123')}"}, {}
        )

        assert identity == "user_123"
        assert session.identity == "user_123"
        assert session.state is SessionState.AUTHENTICATED
        assert session.is_active

    @pytest.mark.asyncio
    async def test_query_token_handshake(self, gateway, token_factory, transport_factory) -> None:
        session = Session(transport_factory())

        identity = await gateway.authenticate_session(
            session, {}, {"token": token_factory("browser_user")}
        )

        assert identity == "browser_user"

    @pytest.mark.asyncio
    async def test_failed_handshake_disconnects(self, gateway, transport_factory) -> None:
        session = Session(transport_factory())

        with pytest.raises(AuthenticationAppError):
            await gateway.authenticate_session(session, {}, {"token": "garbage"})

        assert session.state is SessionState.DISCONNECTED
        assert session.identity is None

    @pytest.mark.asyncio
    async def test_missing_token_handshake_disconnects(self, gateway, transport_factory) -> None:
        session = Session(transport_factory())

        with pytest.raises(AuthenticationAppError) as exc_info:
            await gateway.authenticate_session(session, {}, {})

        assert exc_info.value.code == "missing_token"
        assert session.state is SessionState.DISCONNECTED

    def test_identity_is_immutable(self, transport_factory) -> None:
        session = Session(transport_factory())
        session.bind_identity("user_a")

        with pytest.raises(RuntimeError):
            session.bind_identity("user_b")

        assert session.identity == "user_a"

    def test_require_identity_rejects_unbound_session(self, transport_factory) -> None:
        session = Session(transport_factory())
        session.state = SessionState.AUTHENTICATED

        with pytest.raises(AuthenticationAppError) as exc_info:
            SessionGateway.require_identity(session)

        assert exc_info.value.code == "invalid_token"
        assert session.state is SessionState.DISCONNECTED

    def test_require_identity_returns_bound_identity(self, transport_factory) -> None:
        session = Session(transport_factory())
        session.bind_identity("user_a")

        assert SessionGateway.require_identity(session) == "user_a"

    def test_require_identity_reports_closed_session(self, transport_factory) -> None:
        """A dropped session is told apart from a bad token."""
        session = Session(transport_factory())
        session.bind_identity("user_a")
        session.mark_disconnected()

        with pytest.raises(SessionClosedAppError) as exc_info:
            SessionGateway.require_identity(session)

        assert exc_info.value.code == "session_closed"
