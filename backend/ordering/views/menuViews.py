from django.db.models import Count, Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, generics
from rest_framework.permissions import AllowAny

from ..choices import ItemStatus
from ..models import MenuCategory, MenuItem
from ..responses import success_response
from ..serializers import MenuCategorySerializer, MenuItemSerializer


class MenuCategoryListView(generics.ListAPIView):
    serializer_class = MenuCategorySerializer
    permission_classes = [AllowAny]
    pagination_class = None

    def get_queryset(self):
        return MenuCategory.objects.filter(is_active=True).annotate(
            item_count=Count('menu_items', filter=Q(menu_items__status=ItemStatus.ACTIVE))
        ).order_by('display_order', 'name')

    def list(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_queryset(), many=True)
        return success_response(serializer.data)


class MenuItemListView(generics.ListAPIView):
    serializer_class = MenuItemSerializer
    permission_classes = [AllowAny]
    pagination_class = None
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['status']
    search_fields = ['name', 'description']

    def get_queryset(self):
        category = self.request.query_params.get('category')

        queryset = MenuItem.objects.select_related('category').prefetch_related('customizations__options')

        # Only active items unless a status filter is given
        if not self.request.query_params.get('status'):
            queryset = queryset.filter(status=ItemStatus.ACTIVE)

        if category and category != 'all':
            if category.isdigit():
                queryset = queryset.filter(category_id=int(category))
            else:
                queryset = queryset.filter(category__name__iexact=category)

        return queryset.order_by('category__display_order', 'name')

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        serializer = self.get_serializer(queryset, many=True)
        return success_response(serializer.data)


class MenuItemDetailView(generics.RetrieveAPIView):
    queryset = MenuItem.objects.select_related('category').prefetch_related('customizations__options')
    serializer_class = MenuItemSerializer
    permission_classes = [AllowAny]
    lookup_field = 'slug'

    def retrieve(self, request, *args, **kwargs):
        return success_response(self.get_serializer(self.get_object()).data)
