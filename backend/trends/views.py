from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .services import SocialTrendsService


class SocialTrendsRefreshView(APIView):
    """POST /api/admin/social-trends/refresh : runs the batch and returns its summary."""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        return Response(SocialTrendsService().update_all())
