"""Read-side queries over sales calls: status filters and pagination."""

import math
from typing import Optional, Union

from .errors import ValidationError
from .models import CallFilters, CallPage, CallStatus
from .repository import CallRepository


def parse_status(value: Optional[Union[str, CallStatus]]) -> Optional[CallStatus]:
    """Turn a raw status filter into a CallStatus, or None for no filter."""
    if value is None or value == "":
        return None
    try:
        return CallStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid status filter: {value}",
            {"status": value, "allowed": [s.value for s in CallStatus]},
        ) from None


class AnalysisQueryService:
    """Lists call records for reporting."""

    def __init__(self, repository: CallRepository, *, max_limit: int = 100):
        self.repository = repository
        self.max_limit = max_limit

    async def list(
        self,
        status: Optional[Union[str, CallStatus]] = None,
        customer_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> CallPage:
        """
        List calls matching filters, one page at a time.

        Ordering is by id, so concatenating pages reproduces the filtered set
        exactly once per call.

        Args:
            status: pending, transcribed (not yet scored) or scored
            customer_id: Only calls for this customer
            page: 1-indexed page number
            limit: Page size

        Returns:
            CallPage with items, their customers, total, page, limit,
            total_pages and a status summary

        Raises:
            ValidationError: Unknown status or out-of-range page/limit
        """
        if page < 1:
            raise ValidationError("Page must be at least 1", {"page": page})
        if limit < 1 or limit > self.max_limit:
            raise ValidationError(
                f"Limit must be between 1 and {self.max_limit}", {"limit": limit}
            )

        filters = CallFilters(status=parse_status(status), customer_id=customer_id)
        total = await self.repository.count_calls(filters)
        items = await self.repository.list_calls(filters, offset=(page - 1) * limit, limit=limit)
        summary = await self.repository.count_by_status(customer_id)
        customers = await self.repository.get_customers([call.customer_id for call in items])

        # Narrow the summary to the requested status
        if filters.status is not None:
            counts = {s.value: 0 for s in CallStatus}
            counts[filters.status.value] = getattr(summary, filters.status.value)
            summary = summary.model_copy(update={"total": total, **counts})

        return CallPage(
            items=items,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
            summary=summary,
            customers=customers,
        )
