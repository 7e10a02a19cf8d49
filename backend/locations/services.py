"""
Domain services for the locations app: query composition over locations and
the category rename cascade.
"""
import logging
import uuid
from collections import Counter
from typing import Dict, Iterable, List, Optional

from django.db import transaction
from django.db.models import Q, QuerySet

from .models import Category, Location, tag_substring_q

logger = logging.getLogger(__name__)


class LocationQueryService:
    """
    Domain Service that builds location result sets from free-text search,
    tag, featured and id filters. Views talk to this API instead of composing
    ORM filters themselves.
    """

    SEARCH_FIELDS = ('name', 'description', 'category', 'neighborhood', 'address')

    @staticmethod
    def list_all() -> QuerySet:
        return Location.objects.all()

    @staticmethod
    def search(query: str, tag: Optional[str] = None) -> QuerySet:
        """
        Case-insensitive substring search over name, description, category,
        neighborhood, address and every tag, optionally narrowed to locations
        that also carry `tag` (exact, case-insensitive).

        Args:
            query: Non-empty search text
            tag: Optional tag filter, combined with the text match by AND

        Returns:
            QuerySet of matching locations

        Raises:
            ValueError: if query is empty
        """
        if query is None or not query.strip():
            raise ValueError("Search query must not be empty")

        text_match = Q()
        for field in LocationQueryService.SEARCH_FIELDS:
            text_match |= Q(**{f'{field}__icontains': query})
        text_match |= tag_substring_q(query)

        queryset = Location.objects.filter(text_match)
        if tag:
            queryset = queryset.with_tag(tag)
        return queryset

    @staticmethod
    def by_tag(tag: str) -> QuerySet:
        return Location.objects.with_tag(tag)

    @staticmethod
    def popular_tags(limit: int = 10) -> List[Dict]:
        """
        Distinct tags across all locations with the number of locations
        carrying each, most used first and alphabetical within a count.

        Args:
            limit: Maximum number of entries returned

        Returns:
            List of {'tag': str, 'count': int}
        """
        counts = Counter()
        for tags in Location.objects.values_list('tags', flat=True):
            # A location counts once per distinct tag.
            counts.update(set(tags or []))

        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [{'tag': tag, 'count': count} for tag, count in ranked[:max(limit, 0)]]

    @staticmethod
    def featured(limit: int, offset: int = 0) -> QuerySet:
        limit = max(limit, 0)
        offset = max(offset, 0)
        return Location.objects.featured().order_by('created_at', 'id')[offset:offset + limit]

    @staticmethod
    def by_ids(ids: Iterable) -> List[Location]:
        """
        Locations whose id is in `ids`. Values that are not ids are dropped,
        unknown ids simply produce a shorter result.
        """
        valid_ids = []
        for value in ids or []:
            try:
                valid_ids.append(uuid.UUID(str(value)))
            except (TypeError, ValueError):
                logger.debug("Ignoring malformed location id %r", value)

        if not valid_ids:
            return []
        return list(Location.objects.filter(id__in=valid_ids))

    @staticmethod
    def related(location_id) -> List[Location]:
        """
        Resolves a location's related_location_ids.

        Raises:
            Location.DoesNotExist: if the location itself does not exist
        """
        location = Location.objects.get(pk=location_id)
        if not location.related_location_ids:
            return []
        return LocationQueryService.by_ids(location.related_location_ids)

    @staticmethod
    def trending(limit: int = 5) -> QuerySet:
        return Location.objects.trending()[:max(limit, 0)]


class DuplicateCategoryName(Exception):
    """Raised when a category name is already used by another category."""


class CategoryService:
    """
    Owns category writes. Locations reference categories by name, so a rename
    has to be carried over to every location using the old name.
    """

    @staticmethod
    def create_category(name: str, description: Optional[str] = None) -> Category:
        if Category.objects.filter(name=name).exists():
            raise DuplicateCategoryName(name)
        return Category.objects.create(name=name, description=description)

    @staticmethod
    def update_category(category: Category, data: Dict) -> Category:
        """
        Applies `data` to the category. When the name changes, every location
        whose category equals the old name is moved to the new one in the
        same transaction.

        Raises:
            DuplicateCategoryName: if another category already has the new name
        """
        old_name = category.name
        new_name = data.get('name', old_name)
        renamed = new_name != old_name

        with transaction.atomic():
            if renamed and Category.objects.filter(name=new_name).exclude(pk=category.pk).exists():
                raise DuplicateCategoryName(new_name)

            for field, value in data.items():
                setattr(category, field, value)
            category.save()

            if renamed:
                moved = Location.objects.filter(category=old_name).update(category=new_name)
                logger.info("Renamed category %r to %r, updated %d locations", old_name, new_name, moved)

        return category

    @staticmethod
    def delete_category(category: Category) -> None:
        # Locations keep the old category string; nothing reconciles it.
        category.delete()
