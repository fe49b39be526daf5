from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated

from ..models import Order
from ..order_lifecycle import build_timeline
from ..permissions import IsOrderOwner
from ..responses import success_response
from ..serializers import CheckoutSerializer, OrderListSerializer, OrderSerializer
from ..services.checkout_service import CheckoutService
from ..throttles import CheckoutThrottle


class OrderListCreateView(generics.ListCreateAPIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [CheckoutThrottle]

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return CheckoutSerializer
        return OrderListSerializer

    def get_queryset(self):
        return Order.objects.filter(customer=self.request.user).select_related(
            'customer'
        ).prefetch_related('items').order_by('-created_at')

    def list(self, request, *args, **kwargs):
        return success_response(self.get_serializer(self.get_queryset(), many=True).data)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = CheckoutService.place_order(request.user, serializer.validated_data)
        return success_response(
            OrderSerializer(order).data,
            message='Order created successfully',
            status_code=status.HTTP_201_CREATED,
        )


class OrderDetailView(generics.RetrieveAPIView):
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated, IsOrderOwner]
    lookup_field = 'order_id'

    def get_queryset(self):
        return Order.objects.filter(customer=self.request.user).select_related('customer').prefetch_related(
            'items__menu_item'
        )

    def retrieve(self, request, *args, **kwargs):
        return success_response(self.get_serializer(self.get_object()).data)


class OrderTimelineView(OrderDetailView):

    def retrieve(self, request, *args, **kwargs):
        return success_response(build_timeline(self.get_object()))
