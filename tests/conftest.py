"""
Pytest fixtures and config.
"""

import ssl
import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import hypothesis
import pytest
import trustme
from aiosmtpd.controller import Controller
from aiosmtpd.smtp import SMTP as SMTPD

from tinymail import MailerConfig, Message

from .auth import DummySMTPAuth
from .mocks import FakeTransport
from .smtpd import Authenticator, RecordedEnvelope, RecordingHandler


IS_PYPY = hasattr(sys, "pypy_version_info")

# pypy can take a while to generate data, so don't fail the test due to health checks.
if IS_PYPY:
    base_settings = hypothesis.settings(
        suppress_health_check=(hypothesis.HealthCheck.too_slow,)
    )
else:
    base_settings = hypothesis.settings()
hypothesis.settings.register_profile("dev", parent=base_settings, max_examples=10)
hypothesis.settings.register_profile("ci", parent=base_settings, max_examples=100)


def pytest_addoption(parser: Any) -> None:
    parser.addoption(
        "--bind-addr",
        action="store",
        default="127.0.0.1",
        help="address to bind on for network tests",
    )


# Session scoped static values #


@pytest.fixture(scope="session")
def bind_address(request: pytest.FixtureRequest) -> str:
    """Server side address for socket binding"""
    return str(request.config.getoption("--bind-addr"))


@pytest.fixture(scope="session")
def hostname(bind_address: str) -> str:
    return bind_address


@pytest.fixture(scope="session")
def recipient_str() -> str:
    return "recipient@example.com"


@pytest.fixture(scope="session")
def sender_str() -> str:
    return "sender@example.com"


@pytest.fixture(scope="session")
def auth_username() -> str:
    return "sender@example.com"


@pytest.fixture(scope="session")
def auth_password() -> str:
    return "test"


@pytest.fixture(scope="session")
def cert_authority() -> trustme.CA:
    return trustme.CA()


@pytest.fixture(scope="session")
def unknown_cert_authority() -> trustme.CA:
    return trustme.CA()


@pytest.fixture(scope="session")
def valid_server_cert(cert_authority: trustme.CA, hostname: str) -> trustme.LeafCert:
    return cert_authority.issue_cert(hostname)


@pytest.fixture(scope="session")
def client_tls_context(cert_authority: trustme.CA) -> ssl.SSLContext:
    tls_context = ssl.create_default_context()
    cert_authority.configure_trust(tls_context)

    return tls_context


@pytest.fixture(scope="session")
def unknown_client_tls_context(
    unknown_cert_authority: trustme.CA,
) -> ssl.SSLContext:
    tls_context = ssl.create_default_context()
    unknown_cert_authority.configure_trust(tls_context)

    return tls_context


@pytest.fixture(scope="session")
def server_tls_context(
    cert_authority: trustme.CA, valid_server_cert: trustme.LeafCert
) -> ssl.SSLContext:
    tls_context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
    cert_authority.configure_trust(tls_context)
    valid_server_cert.configure_cert(tls_context)
    tls_context.verify_mode = ssl.CERT_OPTIONAL

    return tls_context


@pytest.fixture(scope="session")
def ca_cert_path(
    tmp_path_factory: pytest.TempPathFactory, cert_authority: trustme.CA
) -> str:
    tmp_path = tmp_path_factory.mktemp("cacert")

    cert_authority.cert_pem.write_to_path(tmp_path / "ca.pem")

    return str(tmp_path / "ca.pem")


# Auth #


@pytest.fixture(scope="function")
def mock_auth(hostname: str) -> DummySMTPAuth:
    return DummySMTPAuth(hostname=hostname, port=25)


# Messages #


@pytest.fixture(scope="function")
def message(recipient_str: str, sender_str: str) -> Message:
    message = Message.from_string("Hello World\n")
    message.set_from(sender_str)
    message.set_to(recipient_str)
    message.set_subject("A message")

    return message


@pytest.fixture(scope="function")
def attachment_path(tmp_path: Path) -> Path:
    path = tmp_path / "report.bin"
    path.write_bytes(bytes(range(256)))

    return path


# Mailer #


@pytest.fixture(scope="function")
def mailer_config(auth_username: str, auth_password: str) -> MailerConfig:
    return MailerConfig(
        user=auth_username, password=auth_password, host="smtp.example.com"
    )


@pytest.fixture(scope="function")
def fake_transport() -> FakeTransport:
    return FakeTransport()


# Servers #


@pytest.fixture(scope="function")
def received_envelopes() -> list[RecordedEnvelope]:
    return []


@pytest.fixture(scope="function")
def smtpd_handler(received_envelopes: list[RecordedEnvelope]) -> RecordingHandler:
    return RecordingHandler(received_envelopes)


@pytest.fixture(scope="function")
def smtpd_authenticator(auth_username: str, auth_password: str) -> Authenticator:
    return Authenticator(auth_username, auth_password)


@pytest.fixture(scope="function")
def smtpd_controller_factory(
    request: pytest.FixtureRequest,
    monkeypatch: pytest.MonkeyPatch,
    bind_address: str,
    unused_tcp_port: int,
    smtpd_handler: RecordingHandler,
    smtpd_authenticator: Authenticator,
    server_tls_context: ssl.SSLContext,
) -> Generator[Callable[..., Controller], None, None]:
    """
    Builds and starts an aiosmtpd server in a thread. Server options are
    passed as keywords; ``starttls=True`` enables STARTTLS (and requires it).
    """
    controllers: list[Controller] = []

    # aiosmtpd prompts with "User Name\0" by default
    monkeypatch.setattr(SMTPD, "AuthLoginUsernameChallenge", "Username:")
    monkeypatch.setattr(SMTPD, "AuthLoginPasswordChallenge", "Password:")

    def factory(*, starttls: bool = False, **smtpd_options: Any) -> Controller:
        if starttls:
            smtpd_options.setdefault("tls_context", server_tls_context)
            smtpd_options.setdefault("require_starttls", True)
        else:
            smtpd_options.setdefault("auth_require_tls", False)

        controller = Controller(
            smtpd_handler,
            hostname=bind_address,
            port=unused_tcp_port,
            authenticator=smtpd_authenticator,
            **smtpd_options,
        )
        controller.start()
        controllers.append(controller)

        return controller

    yield factory

    for controller in controllers:
        controller.stop()
