"""
Firestore Service Layer

This module provides a service layer for interacting with Firestore.
It uses the Firebase Admin SDK and provides type-safe operations
using the Pydantic models defined in app.models.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type, TypeVar

import firebase_admin
from firebase_admin import firestore
from google.api_core.exceptions import AlreadyExists
from google.cloud.firestore import Client, DocumentReference, Query

from app.models import COLLECTION_MODELS, FirestoreBaseModel

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Type variable for generic model operations
T = TypeVar("T", bound=FirestoreBaseModel)


def get_firebase_app() -> firebase_admin.App:
    """Initialize the Firebase Admin SDK once and return the default app."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        return firebase_admin.initialize_app()


class FirestoreService:
    """
    Service class for Firestore operations with type safety and Pydantic integration.
    """

    def __init__(self, database_name: str = "(default)"):
        """
        Initialize the Firestore service.

        Args:
            database_name: Name of the Firestore database to connect to
        """
        self.database_name = database_name
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        """Get or create the Firestore client."""
        if self._client is None:
            app = get_firebase_app()
            self._client = firestore.client(app, database_id=self.database_name)

        return self._client

    def get_collection_ref(self, collection_name: str):
        """Get a reference to a Firestore collection."""
        return self.client.collection(collection_name)

    def get_document_ref(
        self, collection_name: str, document_id: str
    ) -> DocumentReference:
        """Get a reference to a specific document."""
        return self.client.collection(collection_name).document(document_id)

    def _to_model(
        self,
        collection_name: str,
        document_id: str,
        data: Dict[str, Any],
        model_class: Optional[Type[T]] = None,
    ):
        data["id"] = document_id  # Add document ID to data

        if model_class:
            return model_class(**data)
        if collection_name in COLLECTION_MODELS:
            return COLLECTION_MODELS[collection_name](**data)
        return data

    # Generic CRUD operations
    async def create_document(
        self,
        collection_name: str,
        document_data: Dict[str, Any],
        document_id: Optional[str] = None,
    ) -> str:
        """
        Create (or replace) a document in the specified collection.

        Args:
            collection_name: Name of the collection
            document_data: Data to store in the document
            document_id: Optional document ID, will generate UUID if not provided

        Returns:
            The document ID of the created document
        """
        try:
            if document_id is None:
                document_id = str(uuid.uuid4())

            now = datetime.now(timezone.utc)
            document_data.setdefault("created_at", now)
            document_data.setdefault("updated_at", now)

            doc_ref = self.get_document_ref(collection_name, document_id)
            doc_ref.set(document_data)

            logger.info(f"Created document {document_id} in {collection_name}")
            return document_id

        except Exception as e:
            logger.error(f"Failed to create document in {collection_name}: {str(e)}")
            raise

    async def create_document_if_absent(
        self,
        collection_name: str,
        document_id: str,
        document_data: Dict[str, Any],
    ) -> bool:
        """
        Create a document only if no document with that ID exists.

        Args:
            collection_name: Name of the collection
            document_id: ID of the document to create
            document_data: Data to store in the document

        Returns:
            True if the document was created, False if it already existed
        """
        try:
            now = datetime.now(timezone.utc)
            document_data.setdefault("created_at", now)
            document_data.setdefault("updated_at", now)

            doc_ref = self.get_document_ref(collection_name, document_id)
            doc_ref.create(document_data)

            logger.info(f"Created document {document_id} in {collection_name}")
            return True

        except AlreadyExists:
            logger.info(f"Document {document_id} already exists in {collection_name}")
            return False
        except Exception as e:
            logger.error(
                f"Failed to create document {document_id} in {collection_name}: {str(e)}"
            )
            raise

    async def get_document(
        self,
        collection_name: str,
        document_id: str,
        model_class: Optional[Type[T]] = None,
    ) -> Optional[T]:
        """
        Get a document by ID.

        Args:
            collection_name: Name of the collection
            document_id: ID of the document to retrieve
            model_class: Optional Pydantic model class to validate the data

        Returns:
            Document data as Pydantic model instance or None if not found
        """
        try:
            doc = self.get_document_ref(collection_name, document_id).get()

            if not doc.exists:
                return None

            return self._to_model(collection_name, doc.id, doc.to_dict(), model_class)

        except Exception as e:
            logger.error(
                f"Failed to get document {document_id} from {collection_name}: {str(e)}"
            )
            raise

    async def update_document(
        self, collection_name: str, document_id: str, update_data: Dict[str, Any]
    ) -> bool:
        """
        Update a document, merging the given fields.

        Args:
            collection_name: Name of the collection
            document_id: ID of the document to update
            update_data: Data to update

        Returns:
            True if successful
        """
        try:
            update_data["updated_at"] = datetime.now(timezone.utc)

            doc_ref = self.get_document_ref(collection_name, document_id)
            doc_ref.update(update_data)

            logger.info(f"Updated document {document_id} in {collection_name}")
            return True

        except Exception as e:
            logger.error(
                f"Failed to update document {document_id} in {collection_name}: {str(e)}"
            )
            raise

    async def query_collection(
        self,
        collection_name: str,
        filters: Optional[List[tuple]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        model_class: Optional[Type[T]] = None,
    ) -> List[T]:
        """
        Query a collection with filters, ordering, and pagination.

        Args:
            collection_name: Name of the collection to query
            filters: List of filter tuples (field, operator, value)
            order_by: Field to order by
            descending: Whether to order from newest/largest first
            limit: Maximum number of results
            offset: Number of results to skip
            model_class: Optional Pydantic model class

        Returns:
            List of documents as model instances
        """
        try:
            query = self.get_collection_ref(collection_name)

            if filters:
                for field, operator, value in filters:
                    query = query.where(field, operator, value)

            if order_by:
                direction = Query.DESCENDING if descending else Query.ASCENDING
                query = query.order_by(order_by, direction=direction)

            if offset:
                query = query.offset(offset)
            if limit:
                query = query.limit(limit)

            return [
                self._to_model(collection_name, doc.id, doc.to_dict(), model_class)
                for doc in query.stream()
            ]

        except Exception as e:
            logger.error(f"Failed to query collection {collection_name}: {str(e)}")
            raise

    async def count_documents(
        self, collection_name: str, filters: Optional[List[tuple]] = None
    ) -> int:
        """
        Count documents in a collection with optional filters.

        Args:
            collection_name: Name of the collection
            filters: Optional list of filter tuples

        Returns:
            Number of matching documents
        """
        try:
            query = self.get_collection_ref(collection_name)

            if filters:
                for field, operator, value in filters:
                    query = query.where(field, operator, value)

            return len(list(query.stream()))

        except Exception as e:
            logger.error(f"Failed to count documents in {collection_name}: {str(e)}")
            raise


# Global service instance
_firestore_service = None


def get_firestore_service(database_name: str = "(default)") -> FirestoreService:
    """
    Get a singleton Firestore service instance.

    Args:
        database_name: Name of the Firestore database

    Returns:
        FirestoreService instance
    """
    global _firestore_service
    if _firestore_service is None:
        _firestore_service = FirestoreService(database_name)
    return _firestore_service
