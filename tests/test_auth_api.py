"""
API tests for the authentication routes
"""
from datetime import datetime, timedelta, timezone

import jwt
from httpx import AsyncClient

from conftest import TEST_PASSWORD
from stockroom.config import get_settings


class TestLogin:
    """Test POST /auth."""

    async def test_login(self, client: AsyncClient, member):
        response = await client.post("/auth", json={"email": "member@example.com", "password": TEST_PASSWORD})

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == member.user_id
        assert body["token"]
        assert body["refreshToken"]
        assert body["message"] == "Authentication successful"

    async def test_wrong_password(self, client: AsyncClient, member):
        response = await client.post("/auth", json={"email": "member@example.com", "password": "nope"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Email and password combination is incorrect"

    async def test_missing_body(self, client: AsyncClient, db_session):
        response = await client.post("/auth")

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Missing email or password"

    async def test_token_works_on_resources(self, client: AsyncClient, member):
        login = (await client.post("/auth", json={"email": "member@example.com", "password": TEST_PASSWORD})).json()

        response = await client.get("/category", headers={"Authorization": f"Bearer {login['token']}"})

        assert response.status_code == 200


class TestRefresh:
    """Test POST /auth/refresh."""

    async def test_refresh(self, client: AsyncClient, member):
        login = (await client.post("/auth", json={"email": "member@example.com", "password": TEST_PASSWORD})).json()

        response = await client.post(
            "/auth/refresh", json={"userID": member.user_id, "refreshToken": login["refreshToken"]}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Token refreshed successfully"

    async def test_superseded_token(self, client: AsyncClient, member):
        credentials = {"email": "member@example.com", "password": TEST_PASSWORD}
        first = (await client.post("/auth", json=credentials)).json()
        await client.post("/auth", json=credentials)

        response = await client.post(
            "/auth/refresh", json={"userID": member.user_id, "refreshToken": first["refreshToken"]}
        )

        assert response.status_code == 401

    async def test_missing_fields(self, client: AsyncClient, db_session):
        response = await client.post("/auth/refresh", json={"refreshToken": "abc"})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Request must contain refresh token and user ID"


class TestRegister:
    """Test POST /auth/register."""

    def payload(self, organization_id, **overrides):
        return {
            "firstName": "Ada",
            "lastName": "Lovelace",
            "email": "ada@example.com",
            "password": "analytical engine",
            "organizationID": organization_id,
            **overrides,
        }

    async def test_register(self, client: AsyncClient, organizations):
        response = await client.post("/auth/register", json=self.payload(organizations.home))

        assert response.status_code == 201
        assert response.json()["message"] == "User successfully registered"

        login = await client.post("/auth", json={"email": "ada@example.com", "password": "analytical engine"})
        assert login.json()["id"] == response.json()["id"]

    async def test_duplicate_email(self, client: AsyncClient, organizations):
        await client.post("/auth/register", json=self.payload(organizations.home))

        response = await client.post("/auth/register", json=self.payload(organizations.home))

        assert response.status_code == 409
        assert response.json()["error"]["message"] == "User with this email already exists"

    async def test_unknown_organization(self, client: AsyncClient, organizations):
        response = await client.post("/auth/register", json=self.payload(organizations.other + 100))

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Organization does not exist"

    async def test_missing_fields(self, client: AsyncClient, db_session):
        response = await client.post("/auth/register", json={"email": "ada@example.com"})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Missing required fields"

    async def test_role_cannot_be_chosen(self, client: AsyncClient, organizations):
        response = await client.post("/auth/register", json=self.payload(organizations.home, roleID=1))
        assert response.status_code == 400


class TestVerify:
    """Test HEAD /auth/verify."""

    async def test_valid_token(self, client: AsyncClient, auth_headers):
        response = await client.head("/auth/verify", headers=auth_headers)
        assert response.status_code == 200

    async def test_missing_token(self, client: AsyncClient, db_session):
        response = await client.head("/auth/verify")
        assert response.status_code == 401

    async def test_expired_token(self, client: AsyncClient, member):
        past = datetime.now(timezone.utc) - timedelta(minutes=30)
        token = jwt.encode(
            {
                "userID": member.user_id,
                "organizationID": member.organization_id,
                "roleID": member.role_id,
                "iat": past,
                "exp": past + timedelta(minutes=15),
            },
            get_settings().JWT_SECRET_KEY,
            algorithm="HS256",
        )

        response = await client.head("/auth/verify", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
