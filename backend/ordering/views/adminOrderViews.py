import logging

from django.db import transaction
from django.db.models import Q
from rest_framework import generics
from rest_framework.permissions import IsAuthenticated

from ..models import Order
from ..order_lifecycle import OrderStatusService, build_timeline
from ..permissions import IsAdminUserType
from ..responses import error_response, success_response
from ..serializers import (
    AdminOrderUpdateSerializer, BulkStatusUpdateSerializer, OrderListSerializer, OrderSerializer
)
from ..services.stats_service import OrderStatsService

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    'created_at': 'created_at',
    'updated_at': 'updated_at',
    'total': 'total_amount',
    'status': 'status',
    'order_number': 'order_number',
}


class AdminOrderListView(generics.GenericAPIView):
    """List orders with search, status filter and paging; bulk status updates on PATCH"""
    permission_classes = [IsAuthenticated, IsAdminUserType]

    def get_queryset(self):
        params = self.request.query_params
        queryset = Order.objects.select_related('customer').prefetch_related('items')

        search = params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(order_number__icontains=search)
                | Q(customer__username__icontains=search)
                | Q(customer__first_name__icontains=search)
                | Q(customer__last_name__icontains=search)
                | Q(customer__email__icontains=search)
            )

        status_filter = params.get('status')
        if status_filter and status_filter != 'all':
            queryset = queryset.filter(status=status_filter.upper())

        sort_field = SORT_FIELDS.get(params.get('sort_by', 'created_at'), 'created_at')
        if params.get('sort_order', 'desc') == 'desc':
            sort_field = f'-{sort_field}'
        return queryset.order_by(sort_field, '-order_id')

    def get(self, request):
        try:
            page = max(1, int(request.query_params.get('page', 1)))
            limit = min(100, max(1, int(request.query_params.get('limit', 20))))
        except ValueError:
            return error_response('page and limit must be integers')

        queryset = self.get_queryset()
        total = queryset.count()
        orders = queryset[(page - 1) * limit:page * limit]

        return success_response({
            'orders': OrderListSerializer(orders, many=True).data,
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'total_pages': (total + limit - 1) // limit,
            },
        })

    def patch(self, request):
        serializer = BulkStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = OrderStatusService.bulk_update_status(data['order_ids'], data['status'], updated_by=request.user)
        return success_response(
            result.as_dict(),
            message=f"{result.updated_count} orders updated to {data['status']}",
        )


class AdminOrderDetailView(generics.GenericAPIView):
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated, IsAdminUserType]
    lookup_field = 'order_id'
    queryset = Order.objects.select_related('customer').prefetch_related('items__menu_item', 'tracking_history')

    def get(self, request, order_id):
        return success_response(self.get_serializer(self.get_object()).data)

    def patch(self, request, order_id):
        order = self.get_object()
        serializer = AdminOrderUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        with transaction.atomic():
            fields = []
            for field in ('payment_status', 'estimated_delivery', 'special_instructions'):
                if field in data:
                    setattr(order, field, data[field])
                    fields.append(field)
            if fields:
                order.save()

        status_changed = False
        if 'status' in data:
            status_changed = OrderStatusService.update_status(
                order, data['status'], updated_by=request.user, description=data.get('note') or None
            )

        order.refresh_from_db()
        return success_response(
            self.get_serializer(order).data,
            message='Order updated successfully',
            status_changed=status_changed,
        )


class AdminOrderTimelineView(generics.GenericAPIView):
    permission_classes = [IsAuthenticated, IsAdminUserType]
    lookup_field = 'order_id'
    queryset = Order.objects.select_related('customer')

    def get(self, request, order_id):
        return success_response(build_timeline(self.get_object()))


class AdminOrderStatsView(generics.GenericAPIView):
    permission_classes = [IsAuthenticated, IsAdminUserType]

    def get(self, request):
        return success_response(OrderStatsService.order_stats())
