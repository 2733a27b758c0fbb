"""Vector store client for the Qdrant REST API."""
import logging
from typing import Any, Dict, List, Optional

import httpx

from models.chunk import Point, RetrievalHit
from config import QDRANT_URL, QDRANT_COLLECTION, QDRANT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class VectorStoreError(Exception):
    """Non-success response (or transport failure) from the vector store."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "", path: str = ""):
        self.status_code = status_code
        self.body = body
        self.path = path
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class VectorStore:
    """Store chunk points and run cosine similarity search in a Qdrant collection."""

    def __init__(
        self,
        url: str = QDRANT_URL,
        collection: str = QDRANT_COLLECTION,
        timeout: float = QDRANT_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None
    ):
        """
        Initialize the vector store client.

        Args:
            url: Qdrant base URL
            collection: Collection holding the content chunks
            timeout: Request timeout in seconds
            client: Pre-built httpx client (its base_url must point at Qdrant)

        Raises:
            ValueError: If the URL or collection name is missing
        """
        if not url or not collection:
            raise ValueError("QDRANT_URL and QDRANT_COLLECTION are required")

        self.collection = collection
        self.client = client or httpx.Client(
            base_url=url.rstrip("/"),
            timeout=timeout,
            headers={"Content-Type": "application/json"}
        )

        logger.info(f"Initialized VectorStore with collection: {collection}")

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """
        Send one request and decode the JSON body.

        Raises:
            VectorStoreError: For any non-2xx status or transport failure
        """
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise VectorStoreError(f"Qdrant request failed {path}: {e}", path=path) from e

        if response.status_code < 200 or response.status_code >= 300:
            raise VectorStoreError(
                f"Qdrant request failed ({response.status_code}) {path}: {response.text}",
                status_code=response.status_code,
                body=response.text,
                path=path,
            )

        return response.json() if response.content else {}

    def health(self) -> bool:
        """Return True when Qdrant answers its health probe."""
        try:
            response = self.client.get("/healthz")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"Qdrant health check failed: {e}")
            return False

    def ensure_collection(self, dimension: int) -> None:
        """
        Create the collection for cosine distance at the given dimension if absent.

        Args:
            dimension: Vector size

        Raises:
            VectorStoreError: For any failure other than "not found"
        """
        path = f"/collections/{self.collection}"
        try:
            self._request("GET", path)
            return
        except VectorStoreError as e:
            if not e.is_not_found:
                raise

        logger.info(f"Creating collection {self.collection} (dimension={dimension}, distance=Cosine)")
        self._request(
            "PUT",
            path,
            json={"vectors": {"size": dimension, "distance": "Cosine"}}
        )

    def upsert_points(self, points: List[Point]) -> None:
        """
        Upsert points and wait until Qdrant acknowledges the write.

        Args:
            points: Points to write; an empty list is a no-op
        """
        if not points:
            return

        self._request(
            "PUT",
            f"/collections/{self.collection}/points",
            params={"wait": "true"},
            json={"points": [point.to_dict() for point in points]}
        )
        logger.debug(f"Upserted {len(points)} points into {self.collection}")

    def search(
        self,
        vector: List[float],
        limit: int,
        locale: Optional[str] = None
    ) -> List[RetrievalHit]:
        """
        Find the points most similar to a vector.

        Args:
            vector: Query embedding
            limit: Maximum number of hits
            locale: If given, only points whose payload locale equals it

        Returns:
            Hits ordered most similar first
        """
        body: Dict[str, Any] = {
            "vector": vector,
            "limit": limit,
            "with_payload": True,
            "with_vector": False
        }

        locale = (locale or "").strip()
        if locale:
            body["filter"] = {
                "must": [
                    {"key": "locale", "match": {"value": locale}}
                ]
            }

        data = self._request(
            "POST",
            f"/collections/{self.collection}/points/search",
            json=body
        )
        rows = data.get("result")
        if not isinstance(rows, list):
            return []

        hits = [RetrievalHit.from_result(row) for row in rows]
        logger.debug(f"Found {len(hits)} hits (locale={locale or 'any'})")
        return hits

    def close(self) -> None:
        self.client.close()
