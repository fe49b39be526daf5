from rest_framework import generics
from rest_framework.permissions import IsAuthenticated

from ..permissions import IsAdminUserType
from ..responses import success_response
from ..services.stats_service import OrderStatsService


class AdminDashboardStatsView(generics.GenericAPIView):
    permission_classes = [IsAuthenticated, IsAdminUserType]

    def get(self, request):
        return success_response(OrderStatsService.dashboard_stats())
