import copy
import os
import uuid
from datetime import datetime, timezone

import pytest

# config reads the environment at import time
os.environ.setdefault("YOBAEXO_AUTH_JWT_KEY", "test-jwt-key")
os.environ.setdefault("YOBAEXO_ENV", "d")

from fastapi import HTTPException  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from google.api_core.exceptions import NotFound  # noqa: E402

import config  # noqa: E402
from app.models import COLLECTION_MODELS  # noqa: E402
from app.models.payments import GatewayOrder  # noqa: E402
from app.server.dependencies import (  # noqa: E402
    get_firestore,
    get_gateway,
    get_identity_provider,
    get_settings,
)
from app.server.main import app  # noqa: E402
from app.server.routers.auth_routes import (  # noqa: E402
    get_password_hash,
    issue_session_token,
)
from app.services.identity import Identity  # noqa: E402

KEY_SECRET = "test_key_secret"
WEBHOOK_SECRET = "test_webhook_secret"

USER_ID = "user-1"
USER_EMAIL = "listener@example.com"
USER_PASSWORD = "secret123"


class FakeFirestoreService:
    """In-memory stand-in for FirestoreService with the same call signatures."""

    def __init__(self):
        self.collections = {}

    def _collection(self, name):
        return self.collections.setdefault(name, {})

    def _to_model(self, collection_name, document_id, data, model_class=None):
        data = copy.deepcopy(data)
        data["id"] = document_id
        if model_class:
            return model_class(**data)
        if collection_name in COLLECTION_MODELS:
            return COLLECTION_MODELS[collection_name](**data)
        return data

    def seed(self, collection_name, document_id, data):
        self._collection(collection_name)[document_id] = copy.deepcopy(data)

    def raw(self, collection_name, document_id):
        return self._collection(collection_name).get(document_id)

    async def create_document(self, collection_name, document_data, document_id=None):
        document_id = document_id or str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        document_data.setdefault("created_at", now)
        document_data.setdefault("updated_at", now)
        self._collection(collection_name)[document_id] = copy.deepcopy(document_data)
        return document_id

    async def create_document_if_absent(
        self, collection_name, document_id, document_data
    ):
        if document_id in self._collection(collection_name):
            return False
        await self.create_document(collection_name, document_data, document_id)
        return True

    async def get_document(self, collection_name, document_id, model_class=None):
        data = self._collection(collection_name).get(document_id)
        if data is None:
            return None
        return self._to_model(collection_name, document_id, data, model_class)

    async def update_document(self, collection_name, document_id, update_data):
        documents = self._collection(collection_name)
        if document_id not in documents:
            raise NotFound(f"No document to update: {document_id}")
        update_data["updated_at"] = datetime.now(timezone.utc)
        documents[document_id].update(copy.deepcopy(update_data))
        return True

    def _matching(self, collection_name, filters):
        items = list(self._collection(collection_name).items())
        for field, operator, value in filters or []:
            assert operator == "==", f"Unsupported operator {operator}"
            items = [(k, v) for k, v in items if v.get(field) == value]
        return items

    async def query_collection(
        self,
        collection_name,
        filters=None,
        order_by=None,
        descending=False,
        limit=None,
        offset=None,
        model_class=None,
    ):
        items = self._matching(collection_name, filters)
        if order_by:
            items = [item for item in items if item[1].get(order_by) is not None]
            items.sort(key=lambda item: item[1][order_by], reverse=descending)
        if offset:
            items = items[offset:]
        if limit:
            items = items[:limit]
        return [
            self._to_model(collection_name, document_id, data, model_class)
            for document_id, data in items
        ]

    async def count_documents(self, collection_name, filters=None):
        return len(self._matching(collection_name, filters))


class FakeIdentityProvider:
    def __init__(self):
        self.by_email = {}
        self.by_token = {}

    def add(self, uid, email, name=None, id_token=None):
        identity = Identity(uid=uid, email=email, name=name, email_verified=True)
        self.by_email[email.lower()] = identity
        self.by_token[id_token or f"id-token-{uid}"] = identity
        return identity

    def verify_id_token(self, id_token):
        if id_token not in self.by_token:
            raise HTTPException(status_code=401, detail="Invalid ID token")
        return self.by_token[id_token]

    def get_user_by_email(self, email):
        return self.by_email.get(email.lower())


class FakeGateway:
    key_id = "rzp_test_key"

    def __init__(self):
        self.orders = {}

    def add_order(self, order_id, amount, status="created", currency="INR"):
        order = GatewayOrder(
            id=order_id,
            amount=amount,
            amount_paid=amount if status == "paid" else 0,
            currency=currency,
            receipt=f"receipt_{order_id}",
            status=status,
            notes=[],
        )
        self.orders[order_id] = order
        return order

    async def create_order(self, amount, currency, receipt, notes=None):
        order = self.add_order(f"order_{len(self.orders) + 1}", amount, currency=currency)
        order = order.model_copy(update={"receipt": receipt, "notes": notes})
        self.orders[order.id] = order
        return order

    async def fetch_order(self, order_id):
        if order_id not in self.orders:
            raise HTTPException(
                status_code=500,
                detail={
                    "error": "Payment gateway error",
                    "message": "The id provided does not exist",
                },
            )
        return self.orders[order_id]


@pytest.fixture
def settings():
    return config.Settings(
        env="d",
        auth_jwt_key="test-jwt-key",
        razorpay_key_id=FakeGateway.key_id,
        razorpay_key_secret=KEY_SECRET,
        razorpay_webhook_secret=WEBHOOK_SECRET,
        youtube_api_key="yt-api-key",
        youtube_channel_id="UC_test_channel",
        emailjs_public_key="ej-public",
        emailjs_service_id="ej-service",
        emailjs_template_id="ej-template",
    )


@pytest.fixture
def firestore():
    return FakeFirestoreService()


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def client(settings, firestore, identity_provider, gateway):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_firestore] = lambda: firestore
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def user(firestore, identity_provider):
    identity_provider.add(USER_ID, USER_EMAIL, "Listener")
    firestore.seed(
        "users",
        USER_ID,
        {
            "uid": USER_ID,
            "name": "Listener",
            "email": USER_EMAIL,
            "hashed_password": get_password_hash(USER_PASSWORD),
            "license_status": "free",
            "email_verified": True,
            "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        },
    )
    return USER_ID


@pytest.fixture
def auth_headers(user, settings):
    return {"Authorization": f"Bearer {issue_session_token(user, settings.auth_jwt_key)}"}
