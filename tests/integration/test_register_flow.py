"""
Integration tests for the registration and account flows.

Drives the real application against PostgreSQL: verification codes and
reset links are read back from the console email sender's log lines.
Skipped when the database is not running.
"""

import logging
import re
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from psycopg_pool import ConnectionPool

from src.adapters.smtp.console import ConsoleEmailSender
from src.api.dependencies import get_email_sender
from src.api.main import app
from src.config.settings import Settings, get_settings

pytestmark = [pytest.mark.integration, pytest.mark.usefixtures("clean_database")]

CODE_PATTERN = re.compile(r"\[VERIFICATION\] Email: (\S+) Code: (\d{6})")
RESET_PATTERN = re.compile(r"\[PASSWORD RESET\] Email: (\S+) Link: \S+oobCode=(\S+)")


@pytest.fixture
def client(pool: ConnectionPool) -> Generator[TestClient, None, None]:
    """Test client on the shared pool, without the lifespan's own pool."""
    app.state.pool = pool
    app.dependency_overrides[get_settings] = lambda: Settings(otp_settle_seconds=0, bcrypt_cost=4)
    app.dependency_overrides[get_email_sender] = ConsoleEmailSender
    yield TestClient(app)
    app.dependency_overrides.clear()


def last_code(caplog: pytest.LogCaptureFixture, email: str) -> str:
    codes = [code for sent_to, code in CODE_PATTERN.findall(caplog.text) if sent_to == email]
    assert codes, f"no verification code logged for {email}"
    return codes[-1]


def register(
    client: TestClient,
    caplog: pytest.LogCaptureFixture,
    email: str,
    role: str = "donor",
    password: str = "secure123",
    name: str = "Ada Lovelace",
) -> str:
    """Run check-email, send-otp, verify-otp and register; return the uid."""
    with caplog.at_level(logging.INFO):
        assert client.post("/api/auth/check-email", json={"email": email}).status_code == 200
        assert client.post("/api/auth/send-otp", json={"email": email}).status_code == 200
    code = last_code(caplog, email.strip().lower())

    response = client.post("/api/auth/verify-otp", json={"email": email, "otp": code})
    assert response.status_code == 200

    response = client.post(
        "/api/auth/register",
        json={"name": name, "email": email, "password": password, "role": role},
    )
    assert response.status_code == 200, response.json()
    return response.json()["uid"]


def login(client: TestClient, email: str, password: str = "secure123") -> dict[str, str]:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.json()
    return {"Authorization": f"Bearer {response.json()['token']}"}


class TestRegisterFlow:
    def test_full_registration_flow(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        uid = register(client, caplog, "Flow@Example.com")

        headers = login(client, "flow@example.com")
        body = client.get("/api/auth/session", headers=headers).json()

        assert body["isAuthenticated"] is True
        assert body["isLoading"] is False
        assert body["user"]["uid"] == uid
        assert body["user"]["email"] == "flow@example.com"
        assert body["user"]["role"] == "donor"
        assert body["user"]["onboardingCompleted"] is False
        assert body["user"]["avatar"].endswith("?name=Ada+Lovelace")

    def test_check_email_rejects_registered_address(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        register(client, caplog, "taken@example.com")

        response = client.post("/api/auth/check-email", json={"email": "TAKEN@example.com"})

        assert response.status_code == 400
        assert response.json()["errorCode"] == "email-already-exists"

    def test_send_otp_rejects_registered_address(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        register(client, caplog, "taken@example.com")

        response = client.post("/api/auth/send-otp", json={"email": "taken@example.com"})

        assert response.status_code == 400
        assert response.json()["errorCode"] == "email-already-exists"

    def test_code_is_single_use(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO):
            client.post("/api/auth/send-otp", json={"email": "once@example.com"})
        code = last_code(caplog, "once@example.com")
        payload = {"email": "once@example.com", "otp": code}

        assert client.post("/api/auth/verify-otp", json=payload).status_code == 200
        response = client.post("/api/auth/verify-otp", json=payload)

        assert response.status_code == 400
        assert response.json()["errorCode"] == "invalid-otp"

    def test_wrong_code(self, client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO):
            client.post("/api/auth/send-otp", json={"email": "wrong@example.com"})
        code = last_code(caplog, "wrong@example.com")
        wrong = "000000" if code != "000000" else "111111"

        response = client.post(
            "/api/auth/verify-otp", json={"email": "wrong@example.com", "otp": wrong}
        )

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Invalid or expired verification code. Please request a new code.",
            "errorCode": "invalid-otp",
        }

    def test_resend_invalidates_previous_code(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO):
            client.post("/api/auth/send-otp", json={"email": "again@example.com"})
            first = last_code(caplog, "again@example.com")
            caplog.clear()
            client.post("/api/auth/send-otp", json={"email": "again@example.com"})
            second = last_code(caplog, "again@example.com")

        if first != second:
            response = client.post(
                "/api/auth/verify-otp", json={"email": "again@example.com", "otp": first}
            )
            assert response.status_code == 400
        response = client.post(
            "/api/auth/verify-otp", json={"email": "again@example.com", "otp": second}
        )
        assert response.status_code == 200

    def test_duplicate_register(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        register(client, caplog, "dup@example.com")

        response = client.post(
            "/api/auth/register",
            json={"name": "Other", "email": "dup@example.com", "password": "secure123", "role": "donor"},
        )

        assert response.status_code == 400
        assert response.json()["errorCode"] == "email-already-exists"

    def test_register_missing_fields(self, client: TestClient) -> None:
        response = client.post("/api/auth/register", json={"email": "x@example.com"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "All fields are required"}


class TestAccountFlow:
    def test_wrong_password(self, client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
        register(client, caplog, "ada@example.com")

        response = client.post(
            "/api/auth/login", json={"email": "ada@example.com", "password": "nope123"}
        )

        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_onboarding_then_navigation(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        register(client, caplog, "ada@example.com")
        headers = login(client, "ada@example.com")

        before = client.get("/api/navigation", params={"path": "/"}, headers=headers).json()
        assert before["redirectTo"] == "/onboarding"

        response = client.post(
            "/api/auth/onboarding",
            json={"interests": ["health"], "preferredCommunication": "email"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["user"]["onboardingCompleted"] is True

        after = client.get("/api/navigation", params={"path": "/"}, headers=headers).json()
        assert after["outcome"] == "allow"
        denied = client.get("/api/navigation", params={"path": "/users"}, headers=headers).json()
        assert denied["redirectTo"] == "/"

    def test_logout_ends_session(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        register(client, caplog, "ada@example.com")
        headers = login(client, "ada@example.com")

        assert client.post("/api/auth/logout", headers=headers).status_code == 200

        body = client.get("/api/auth/session", headers=headers).json()
        assert body["isAuthenticated"] is False

    def test_password_reset(self, client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
        register(client, caplog, "ada@example.com")
        old_headers = login(client, "ada@example.com")

        with caplog.at_level(logging.INFO):
            response = client.post("/api/auth/forgot-password", json={"email": "ada@example.com"})
        assert response.status_code == 200
        [(email, code)] = RESET_PATTERN.findall(caplog.text)
        assert email == "ada@example.com"

        response = client.post(
            "/api/auth/reset-password", json={"code": code, "newPassword": "brandnew1"}
        )
        assert response.status_code == 200
        assert response.json()["email"] == "ada@example.com"

        login(client, "ada@example.com", "brandnew1")
        session = client.get("/api/auth/session", headers=old_headers).json()
        assert session["isAuthenticated"] is False

        reused = client.post(
            "/api/auth/reset-password", json={"code": code, "newPassword": "another1"}
        )
        assert reused.status_code == 400

    def test_forgot_password_unknown_email(self, client: TestClient) -> None:
        response = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})

        assert response.status_code == 200
        assert response.json()["success"] is True


class TestDonationFlow:
    def test_donation_updates_program_total(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        register(client, caplog, "admin@example.com", role="admin", name="Grace Hopper")
        register(client, caplog, "donor@example.com", name="Ada Lovelace")
        admin = login(client, "admin@example.com")
        donor = login(client, "donor@example.com")

        response = client.post(
            "/api/programs",
            json={"title": "Clean Water", "status": "active", "target": 1000},
            headers=admin,
        )
        assert response.status_code == 201
        program_id = response.json()["program"]["id"]

        response = client.post(
            "/api/donations", json={"programId": program_id, "amount": 75}, headers=donor
        )
        assert response.status_code == 201
        donation = response.json()["donation"]
        assert donation["donorName"] == "Ada Lovelace"

        program = client.get(f"/api/programs/{program_id}").json()["program"]
        assert program["raised"] == 75

        mine = client.get("/api/donations/mine", headers=donor).json()["donations"]
        assert [d["id"] for d in mine] == [donation["id"]]

        assert client.delete(f"/api/donations/{donation['id']}", headers=admin).status_code == 200
        program = client.get(f"/api/programs/{program_id}").json()["program"]
        assert program["raised"] == 0

    def test_donor_cannot_create_program(
        self, client: TestClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        register(client, caplog, "donor@example.com")
        donor = login(client, "donor@example.com")

        response = client.post("/api/programs", json={"title": "Nope"}, headers=donor)

        assert response.status_code == 403

    def test_admin_lists_users(self, client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
        register(client, caplog, "admin@example.com", role="admin")
        register(client, caplog, "donor@example.com")
        admin = login(client, "admin@example.com")

        users = client.get("/api/users", headers=admin).json()["users"]

        assert {user["email"] for user in users} == {"admin@example.com", "donor@example.com"}
