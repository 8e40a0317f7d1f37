"""Seed the payment gateway table and the ticket delivery email template.

Run from the project root:
python scripts/seed_payment_gateways.py

Secrets are not written here; each gateway points at its environment
variables through `env:` indirections so nothing sensitive lands in the DB.
"""
from kamleen.database.database import Base, SessionLocal, engine
from kamleen.database import models
from kamleen.database.payment_models import GatewayType, PaymentGateway

GATEWAYS = [
    {"key": "cash", "name": "Pay on site", "type": GatewayType.CASH, "is_enabled": True, "sort_order": 0, "config": {}},
    {
        "key": "stripe", "name": "Card (Stripe)", "type": GatewayType.CARD, "sort_order": 10,
        "config": {"secret_key": "env:STRIPE_SECRET_KEY", "webhook_secret": "env:STRIPE_WEBHOOK_SECRET"},
    },
    {
        "key": "payzone", "name": "Card (Payzone)", "type": GatewayType.CARD, "sort_order": 20,
        "config": {"secret_key": "env:PAYZONE_SECRET_KEY"},
    },
    {
        "key": "cmi", "name": "Card (CMI)", "type": GatewayType.CARD, "sort_order": 30,
        "config": {"client_id": "env:CMI_CLIENT_ID", "store_key": "env:CMI_SECRET_KEY"},
    },
    {
        "key": "paypal", "name": "PayPal", "type": GatewayType.PAYPAL, "sort_order": 40,
        "config": {"client_id": "env:PAYPAL_CLIENT_ID", "client_secret": "env:PAYPAL_CLIENT_SECRET"},
    },
    {
        "key": "razorpay", "name": "Razorpay", "type": GatewayType.CARD, "sort_order": 50,
        "config": {"key_id": "env:RAZORPAY_KEY_ID", "key_secret": "env:RAZORPAY_KEY_SECRET"},
    },
]

TICKETS_TEMPLATE = {
    "key": "tickets_delivery",
    "subject": "Your tickets for {{ experienceTitle }}",
    "text": (
        "Hello {{ name }},\n\n"
        "Your reservation for {{ experienceTitle }} on {{ sessionDate }} is confirmed.\n"
        "Your tickets are attached. You can also find them at {{ dashboardUrl }}.\n"
    ),
    "html": (
        "<p>Hello {{ name }},</p>"
        "<p>Your reservation for <strong>{{ experienceTitle }}</strong> on {{ sessionDate }} is confirmed.</p>"
        "<p>Your tickets are attached. You can also find them in "
        "<a href=\"{{ dashboardUrl }}\">your dashboard</a>.</p>"
    ),
}


def seed():
    # ensure tables exist
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        created = 0
        for row in GATEWAYS:
            if db.query(PaymentGateway).filter(PaymentGateway.key == row["key"]).first():
                continue
            db.add(PaymentGateway(**row))
            created += 1

        if not db.query(models.EmailTemplate).filter(models.EmailTemplate.key == TICKETS_TEMPLATE["key"]).first():
            db.add(models.EmailTemplate(**TICKETS_TEMPLATE))
            print("Seeded tickets_delivery email template.")

        db.commit()
        print(f"Seeded {created} payment gateway(s).")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
