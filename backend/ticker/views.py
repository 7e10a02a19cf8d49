"""
API views for the news ticker.
"""
from rest_framework import viewsets
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import TickerItemSerializer
from .services import TickerService


class ActiveTickerView(APIView):
    """GET /api/ticker : what the public ticker shows right now."""
    permission_classes = [AllowAny]

    def get(self, request):
        serializer = TickerItemSerializer(TickerService.get_active_ticker_items(), many=True)
        return Response(serializer.data)


class TickerItemAdminViewSet(viewsets.ModelViewSet):
    """Curator management of every ticker item, including expired ones."""
    serializer_class = TickerItemSerializer
    permission_classes = [IsAuthenticated]
    lookup_value_regex = r'[0-9a-fA-F-]{36}'

    def get_queryset(self):
        return TickerService.get_all_ticker_items()

    def update(self, request, *args, **kwargs):
        kwargs['partial'] = True
        return super().update(request, *args, **kwargs)
