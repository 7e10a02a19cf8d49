from django.db.models import QuerySet

from .models import TickerItem


class TickerService:
    """Read side of the news ticker."""

    @staticmethod
    def get_all_ticker_items() -> QuerySet:
        return TickerItem.objects.by_priority()

    @staticmethod
    def get_active_ticker_items() -> QuerySet:
        """
        Items the public ticker shows: active, not past their end date,
        ordered by priority then recency.
        """
        return TickerItem.objects.active().by_priority()
