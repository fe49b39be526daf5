import logging
from datetime import timedelta
from decimal import Decimal

from django.db.models import Avg, Count, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from ..choices import DeliveryType, OrderStatus
from ..models import MenuItem, Order, OrderItem
from .. import pricing

logger = logging.getLogger(__name__)

REVENUE_STATUSES = [
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]

IN_PROGRESS_STATUSES = [
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
]


def _start_of_day(now):
    return timezone.localtime(now).replace(hour=0, minute=0, second=0, microsecond=0)


def _percent_change(current, previous):
    if not previous:
        return 0.0
    return round(float((Decimal(current) - Decimal(previous)) / Decimal(previous) * 100), 2)


class OrderStatsService:

    @staticmethod
    def order_stats(now=None):
        """Headline counters for the admin orders screen"""
        now = now or timezone.now()
        today = _start_of_day(now)
        tomorrow = today + timedelta(days=1)
        todays = Order.objects.filter(created_at__gte=today, created_at__lt=tomorrow)

        completed_today = todays.filter(status=OrderStatus.DELIVERED).count()
        today_orders = todays.count()
        today_revenue = todays.exclude(status=OrderStatus.CANCELLED).aggregate(total=Sum('total_amount'))['total']
        avg_order_value = Order.objects.exclude(status=OrderStatus.CANCELLED).aggregate(avg=Avg('total_amount'))['avg']

        return {
            'total_orders': Order.objects.count(),
            'pending_orders': Order.objects.filter(status=OrderStatus.PENDING).count(),
            'completed_orders': completed_today,
            'out_for_delivery': Order.objects.filter(status=OrderStatus.OUT_FOR_DELIVERY).count(),
            'today_orders': today_orders,
            'today_revenue': pricing.to_money(today_revenue or 0),
            'avg_order_value': pricing.to_money(avg_order_value or 0),
            'completion_rate': round(completed_today / (today_orders or 1) * 100, 1),
        }

    @staticmethod
    def dashboard_stats(now=None):
        """Revenue, order and dish metrics for the admin dashboard"""
        from ..serializers.orderSerializer import OrderListSerializer
        from ..serializers.menuSerializers import MenuItemSummarySerializer

        now = now or timezone.now()
        start_of_month = _start_of_day(now).replace(day=1)
        start_of_previous_month = (start_of_month - timedelta(days=1)).replace(day=1)

        revenue_orders = Order.objects.filter(status__in=REVENUE_STATUSES)
        previous_revenue_orders = revenue_orders.filter(
            created_at__gte=start_of_previous_month, created_at__lt=start_of_month
        )
        total_revenue = revenue_orders.aggregate(total=Sum('total_amount'))['total'] or Decimal('0')
        previous_revenue = previous_revenue_orders.aggregate(total=Sum('total_amount'))['total'] or Decimal('0')

        placed_orders = Order.objects.exclude(status=OrderStatus.CANCELLED)
        total_orders = placed_orders.count()
        previous_orders = placed_orders.filter(
            created_at__gte=start_of_previous_month, created_at__lt=start_of_month
        ).count()

        avg_order_value = total_revenue / total_orders if total_orders else Decimal('0')
        previous_avg = previous_revenue / previous_orders if previous_orders else Decimal('0')

        pending_deliveries = Order.objects.filter(
            status__in=IN_PROGRESS_STATUSES,
            delivery_type=DeliveryType.DELIVERY
        ).count()

        return {
            'metrics': {
                'total_revenue': {
                    'value': pricing.to_money(total_revenue),
                    'change': _percent_change(total_revenue, previous_revenue),
                },
                'total_orders': {
                    'value': total_orders,
                    'change': _percent_change(total_orders, previous_orders),
                },
                'avg_order_value': {
                    'value': pricing.to_money(avg_order_value),
                    'change': _percent_change(avg_order_value, previous_avg),
                },
                'pending_deliveries': {
                    'value': pending_deliveries,
                },
            },
            'daily_revenue': OrderStatsService.daily_revenue(now),
            'popular_dishes': OrderStatsService.popular_dishes(MenuItemSummarySerializer),
            'recent_orders': OrderListSerializer(
                Order.objects.select_related('customer').prefetch_related('items')[:10], many=True
            ).data,
        }

    @staticmethod
    def daily_revenue(now, days=7):
        """Revenue per local calendar day, oldest first, zero-filled"""
        today = _start_of_day(now)
        start = today - timedelta(days=days - 1)
        rows = (
            Order.objects.filter(status__in=REVENUE_STATUSES, created_at__gte=start)
            .annotate(day=TruncDate('created_at', tzinfo=timezone.get_current_timezone()))
            .values('day')
            .annotate(revenue=Sum('total_amount'), orders=Count('order_id'))
        )
        by_day = {row['day']: row for row in rows}

        series = []
        for offset in range(days):
            day = (start + timedelta(days=offset)).date()
            row = by_day.get(day)
            series.append({
                'date': day.isoformat(),
                'revenue': pricing.to_money(row['revenue'] if row else 0),
                'orders': row['orders'] if row else 0,
            })
        return series

    @staticmethod
    def popular_dishes(item_serializer, limit=5):
        rows = list(
            OrderItem.objects.filter(menu_item__isnull=False)
            .values('menu_item')
            .annotate(order_count=Count('order_item_id'), total_quantity=Sum('quantity'))
            .order_by('-order_count', '-total_quantity')[:limit]
        )
        menu_items = MenuItem.objects.in_bulk([row['menu_item'] for row in rows])

        dishes = []
        for row in rows:
            menu_item = menu_items.get(row['menu_item'])
            if menu_item is None:
                continue
            dishes.append({
                **item_serializer(menu_item).data,
                'order_count': row['order_count'],
                'total_quantity': row['total_quantity'] or 0,
            })
        return dishes
