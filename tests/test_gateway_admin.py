import pytest

from kamleen.core.crypto import ENCRYPTED_PREFIX, unseal
from kamleen.database.payment_models import GatewayType, PaymentGateway
from kamleen.payments.gateway_config import resolve_gateway
from tests.conftest import auth_headers


def _stored(db, key):
    db.expire_all()
    return db.query(PaymentGateway).filter(PaymentGateway.key == key).one()


class TestGatewayAdmin:
    def test_secrets_are_sealed_at_rest_and_masked_on_read(self, client, db, admin):
        resp = client.post(
            "/api/admin/payment-gateways",
            json={
                "key": "Stripe",
                "name": "Card",
                "config": {"secret_key": "sk_live_abc", "webhook_secret": "whsec_live", "publishable_key": "pk_live"},
                "is_enabled": True,
            },
            headers=auth_headers(admin),
        )

        assert resp.status_code == 201, resp.text
        assert resp.json()["config"] == {
            "secret_key": "********",
            "webhook_secret": "********",
            "publishable_key": "pk_live",
        }
        stored = _stored(db, "stripe")
        assert stored.config["secret_key"].startswith(ENCRYPTED_PREFIX)
        assert unseal(stored.config["secret_key"]) == "sk_live_abc"
        assert resolve_gateway(stored).get("secret_key") == "sk_live_abc"

    def test_unknown_provider_key(self, client, admin):
        resp = client.post("/api/admin/payment-gateways", json={"key": "bitcoin", "name": "BTC"}, headers=auth_headers(admin))
        assert resp.status_code == 400

    def test_duplicate_key(self, client, admin, make_gateway):
        make_gateway("cash")
        resp = client.post("/api/admin/payment-gateways", json={"key": "cash", "name": "Cash"}, headers=auth_headers(admin))
        assert resp.status_code == 409

    def test_masked_placeholder_keeps_stored_secret(self, client, db, admin, make_gateway):
        make_gateway("payzone")
        client.put(
            "/api/admin/payment-gateways/payzone",
            json={"config": {"secret_key": "pz-secret"}},
            headers=auth_headers(admin),
        )
        sealed = _stored(db, "payzone").config["secret_key"]

        resp = client.put(
            "/api/admin/payment-gateways/payzone",
            json={"config": {"secret_key": "********", "gateway_url": "https://pz.test/pay"}, "is_enabled": False},
            headers=auth_headers(admin),
        )

        assert resp.status_code == 200
        stored = _stored(db, "payzone")
        assert stored.config["secret_key"] == sealed
        assert stored.config["gateway_url"] == "https://pz.test/pay"
        assert stored.is_enabled is False

    def test_delete(self, client, db, admin, make_gateway):
        make_gateway("cmi")
        resp = client.delete("/api/admin/payment-gateways/cmi", headers=auth_headers(admin))
        assert resp.status_code == 204
        assert db.query(PaymentGateway).count() == 0

    def test_list_is_admin_only(self, client, explorer):
        assert client.get("/api/admin/payment-gateways", headers=auth_headers(explorer)).status_code == 403


class TestGatewayResolution:
    def test_env_indirection(self, db, make_gateway, monkeypatch):
        monkeypatch.setenv("ALT_PAYZONE_SECRET", "from-env")
        gateway = make_gateway("payzone", config={"secret_key": "env:ALT_PAYZONE_SECRET"})
        assert resolve_gateway(gateway).get("secret_key") == "from-env"

    def test_process_defaults_fill_missing_fields(self, db, make_gateway):
        gateway = make_gateway("razorpay")
        resolved = resolve_gateway(gateway)
        assert resolved.get("key_id") == "rzp_test_kamleen"
        assert resolved.get("webhook_secret") == "rzp-webhook-secret"


class TestPublicPaymentSettings:
    def test_only_enabled_gateways_in_order(self, client, make_gateway):
        make_gateway("stripe", sort_order=2)
        make_gateway("cash", sort_order=1, gateway_type=GatewayType.CASH)
        make_gateway("paypal", is_enabled=False)

        resp = client.get("/api/settings/payments")

        assert resp.status_code == 200
        body = resp.json()
        assert body["enabled"] == ["cash", "stripe"]
        assert body["default_provider"] == "cash"
        assert all("config" not in g for g in body["gateways"])

    def test_nothing_enabled(self, client):
        body = client.get("/api/settings/payments").json()
        assert body == {"gateways": [], "enabled": [], "default_provider": None}


@pytest.mark.unit
class TestRegistry:
    def test_every_seeded_key_has_a_provider(self):
        from kamleen.payments.registry import registered_keys

        assert registered_keys() == ["cash", "cmi", "paypal", "payzone", "razorpay", "stripe"]
