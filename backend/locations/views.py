"""
API views for locations app endpoints.
"""
import logging

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from django.shortcuts import get_object_or_404

from seo.indexnow import notify_location_changed
from .models import Category, InsiderTip, Location
from .serializers import CategorySerializer, InsiderTipSerializer, LocationSerializer
from .services import CategoryService, DuplicateCategoryName, LocationQueryService

logger = logging.getLogger(__name__)

UUID_REGEX = r'[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}'


def int_param(request, name: str, default: int) -> int:
    """
    Reads a non-negative integer query parameter.

    Raises:
        ValueError: if the value is not a non-negative integer
    """
    raw = request.query_params.get(name)
    if raw in (None, ''):
        return default
    value = int(raw)
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


class LocationViewSet(viewsets.ModelViewSet):
    """
    ViewSet for location CRUD plus the public discovery queries.
    Reads are open, writes need a curator session.
    """
    queryset = Location.objects.all().order_by('created_at', 'id')
    serializer_class = LocationSerializer
    lookup_value_regex = UUID_REGEX

    def update(self, request, *args, **kwargs):
        # PUT accepts a subset of fields, like PATCH.
        kwargs['partial'] = True
        return super().update(request, *args, **kwargs)

    def perform_create(self, serializer):
        location = serializer.save()
        logger.info("Created location %s (%s)", location.slug, location.id)
        notify_location_changed(location.slug)

    def perform_update(self, serializer):
        location = serializer.save()
        notify_location_changed(location.slug)

    def perform_destroy(self, instance):
        slug = instance.slug
        instance.delete()
        logger.info("Deleted location %s", slug)
        notify_location_changed(slug)

    @action(detail=False, methods=['get'])
    def search(self, request):
        """
        Free-text search.

        Query parameters:
        - q: str (required)
        - tag: str (optional, exact tag filter)
        """
        try:
            locations = LocationQueryService.search(
                request.query_params.get('q', ''),
                tag=request.query_params.get('tag') or None,
            )
        except ValueError:
            return Response(
                {'error': "Search query parameter 'q' is required"},
                status=status.HTTP_400_BAD_REQUEST
            )

        serializer = self.get_serializer(locations, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'], url_path=r'by-tag/(?P<tag>[^/]+)')
    def by_tag(self, request, tag=None):
        locations = LocationQueryService.by_tag(tag)
        serializer = self.get_serializer(locations, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'], url_path=r'by-slug/(?P<slug>[^/]+)')
    def by_slug(self, request, slug=None):
        location = get_object_or_404(Location, slug=slug)
        serializer = self.get_serializer(location)
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def featured(self, request):
        """
        Featured locations, oldest first.

        Query parameters:
        - limit: int (default: 10)
        - offset: int (default: 0)
        """
        try:
            limit = int_param(request, 'limit', 10)
            offset = int_param(request, 'offset', 0)
        except ValueError:
            return Response(
                {'error': 'Invalid parameters. limit and offset must be non-negative integers'},
                status=status.HTTP_400_BAD_REQUEST
            )

        locations = LocationQueryService.featured(limit, offset)
        serializer = self.get_serializer(locations, many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def trending(self, request):
        try:
            limit = int_param(request, 'limit', 5)
        except ValueError:
            return Response(
                {'error': 'Invalid parameters. limit must be a non-negative integer'},
                status=status.HTTP_400_BAD_REQUEST
            )

        locations = LocationQueryService.trending(limit)
        serializer = self.get_serializer(locations, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['get'])
    def related(self, request, pk=None):
        try:
            locations = LocationQueryService.related(pk)
        except Location.DoesNotExist:
            return Response({'error': 'Location not found'}, status=status.HTTP_404_NOT_FOUND)

        serializer = self.get_serializer(locations, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['get'], url_path='insider-tips')
    def insider_tips(self, request, pk=None):
        location = self.get_object()
        tips = InsiderTip.for_location(location.id)
        serializer = InsiderTipSerializer(tips, many=True)
        return Response(serializer.data)


class PopularTagsView(APIView):
    """GET /api/tags?limit= : most used tags with their location counts."""

    def get(self, request):
        try:
            limit = int_param(request, 'limit', 10)
        except ValueError:
            return Response(
                {'error': 'Invalid parameters. limit must be a non-negative integer'},
                status=status.HTTP_400_BAD_REQUEST
            )
        return Response(LocationQueryService.popular_tags(limit))


class CategoryViewSet(viewsets.ModelViewSet):
    queryset = Category.objects.all().order_by('name')
    serializer_class = CategorySerializer
    lookup_value_regex = UUID_REGEX

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            category = CategoryService.create_category(**serializer.validated_data)
        except DuplicateCategoryName:
            return Response(
                {'error': 'A category with this name already exists'},
                status=status.HTTP_400_BAD_REQUEST
            )
        return Response(self.get_serializer(category).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        category = self.get_object()
        serializer = self.get_serializer(category, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            category = CategoryService.update_category(category, serializer.validated_data)
        except DuplicateCategoryName:
            return Response(
                {'error': 'A category with this name already exists'},
                status=status.HTTP_400_BAD_REQUEST
            )
        return Response(self.get_serializer(category).data)

    def perform_destroy(self, instance):
        CategoryService.delete_category(instance)


class InsiderTipAdminViewSet(viewsets.ModelViewSet):
    """Curator-only management of insider tips."""
    queryset = InsiderTip.objects.select_related('location').order_by('location_id', 'created_at')
    serializer_class = InsiderTipSerializer
    permission_classes = [IsAuthenticated]
    lookup_value_regex = UUID_REGEX

    def update(self, request, *args, **kwargs):
        kwargs['partial'] = True
        return super().update(request, *args, **kwargs)
