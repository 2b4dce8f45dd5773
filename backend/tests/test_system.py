# Overview: Pytest coverage for the health endpoint and CLI commands.

from smartbill.models import Product, Store, StoreSession
from smartbill.services import session_service


class TestHealth:

    def test_health(self, client, db_session, store_a):
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "healthy"
        assert data["checks"]["database"]["details"]["stores"] == 1

    def test_cors_header_for_known_origin(self, client, db_session):
        response = client.get("/api/health", headers={"Origin": "http://localhost:5173"})

        assert response.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

    def test_no_cors_header_for_unknown_origin(self, client, db_session):
        response = client.get("/api/health", headers={"Origin": "http://evil.example"})

        assert "Access-Control-Allow-Origin" not in response.headers


class TestCli:

    def test_seed_demo_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()

        first = runner.invoke(args=["stores", "seed-demo"])
        second = runner.invoke(args=["stores", "seed-demo"])

        assert first.exit_code == 0, first.output
        assert second.exit_code == 0, second.output
        assert "already exists" in second.output
        assert db_session.query(Store).count() == 1
        assert db_session.query(Product).count() == 3

    def test_stores_list(self, app, db_session, store_a):
        result = app.test_cli_runner().invoke(args=["stores", "list"])

        assert result.exit_code == 0
        assert "Store A" in result.output

    def test_rotate_key(self, app, db_session, store_a):
        old_key = store_a.api_key

        result = app.test_cli_runner().invoke(args=["stores", "rotate-key", str(store_a.id)])

        assert result.exit_code == 0
        db_session.expire_all()
        assert db_session.get(Store, store_a.id).api_key != old_key

    def test_rotate_key_unknown_store(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["stores", "rotate-key", "99999"])

        assert result.exit_code != 0

    def test_cleanup_sessions(self, app, db_session, store_a):
        _, token = session_service.create_session(store_a.id)
        session_service.revoke_session(token)

        result = app.test_cli_runner().invoke(args=["system", "cleanup-sessions"])

        assert result.exit_code == 0
        assert db_session.query(StoreSession).count() == 0
