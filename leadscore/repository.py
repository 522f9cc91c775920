"""Repository interface for customers and sales calls."""

from abc import ABC, abstractmethod
from typing import Optional

from .models import (
    CallFilters,
    Customer,
    SalesCall,
    ScoreFields,
    StatusSummary,
    TranscriptionResult,
)


class CallRepository(ABC):
    """Abstract interface for storing and retrieving call records.

    Pipeline writes go through the ``commit_*`` methods only. Each is a single
    conditional update: it applies only if the target fields are still empty at
    commit time, and returns None otherwise.
    """

    @abstractmethod
    async def get_call(self, call_id: int) -> Optional[SalesCall]:
        """
        Get a sales call by id.

        Args:
            call_id: Sales call id

        Returns:
            SalesCall if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_customer(self, customer_id: int) -> Optional[Customer]:
        """
        Get a customer by id.

        Args:
            customer_id: Customer id

        Returns:
            Customer if found, None otherwise
        """
        pass

    @abstractmethod
    async def create_customer(
        self, name: str, phone: str, email: Optional[str] = None
    ) -> Customer:
        """Insert a customer and return it with its new id."""
        pass

    @abstractmethod
    async def get_customers(self, customer_ids: list[int]) -> dict[int, Customer]:
        """Batch-load customers by id. Unknown ids are left out."""
        pass

    @abstractmethod
    async def create_call(self, customer_id: int, audio_file_path: str) -> SalesCall:
        """
        Insert a sales call in the pending state.

        Raises:
            NotFoundError: If the customer does not exist
        """
        pass

    @abstractmethod
    async def commit_transcript(
        self, call_id: int, transcription: TranscriptionResult
    ) -> Optional[SalesCall]:
        """
        Store a transcript if the call has none yet.

        Returns:
            Updated SalesCall, or None if the precondition no longer holds
        """
        pass

    @abstractmethod
    async def commit_scores(self, call_id: int, scores: ScoreFields) -> Optional[SalesCall]:
        """
        Store scores if the call is transcribed and not yet scored.

        Returns:
            Updated SalesCall, or None if the precondition no longer holds
        """
        pass

    @abstractmethod
    async def commit_analysis(
        self, call_id: int, transcription: TranscriptionResult, scores: ScoreFields
    ) -> Optional[SalesCall]:
        """
        Store transcript and scores together if the call is still pending.

        Returns:
            Updated SalesCall, or None if the precondition no longer holds
        """
        pass

    @abstractmethod
    async def list_calls(
        self, filters: CallFilters, offset: int, limit: int
    ) -> list[SalesCall]:
        """
        List calls matching filters, ordered by id ascending.

        Args:
            filters: Status and customer filters
            offset: Number of rows to skip
            limit: Maximum number of rows

        Returns:
            List of SalesCall
        """
        pass

    @abstractmethod
    async def count_calls(self, filters: CallFilters) -> int:
        """Count calls matching filters."""
        pass

    @abstractmethod
    async def count_by_status(self, customer_id: Optional[int] = None) -> StatusSummary:
        """Count calls per pipeline state, optionally for one customer."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        pass
