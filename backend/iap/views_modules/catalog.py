from __future__ import annotations

from rest_framework import generics
from rest_framework.permissions import AllowAny

from ..serializers import IapProductSerializer, ProductListQuerySerializer
from ..tools.catalog import list_products


class IapProductListView(generics.ListAPIView):
    authentication_classes = []
    permission_classes = [AllowAny]
    serializer_class = IapProductSerializer

    def get_queryset(self):
        query = ProductListQuerySerializer(data=self.request.query_params)
        query.is_valid(raise_exception=True)
        return list_products(query.validated_data["platform"])
