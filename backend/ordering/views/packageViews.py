from rest_framework import generics
from rest_framework.permissions import AllowAny

from ..models import Package
from ..responses import success_response
from ..serializers import PackageSerializer


class ActivePackageMixin:
    serializer_class = PackageSerializer
    permission_classes = [AllowAny]

    def get_queryset(self):
        return Package.objects.filter(is_active=True).prefetch_related('included_items__menu_item')


class PackageListView(ActivePackageMixin, generics.ListAPIView):
    pagination_class = None

    def list(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_queryset(), many=True)
        return success_response(serializer.data)


class PackageDetailView(ActivePackageMixin, generics.RetrieveAPIView):
    lookup_field = 'package_id'

    def retrieve(self, request, *args, **kwargs):
        return success_response(self.get_serializer(self.get_object()).data)


class PackageBySlugView(ActivePackageMixin, generics.RetrieveAPIView):
    lookup_field = 'slug'

    def retrieve(self, request, *args, **kwargs):
        return success_response(self.get_serializer(self.get_object()).data)
