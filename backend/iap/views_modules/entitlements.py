from __future__ import annotations

from rest_framework import generics
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from ..exceptions import PurchaseNotFound
from ..models import Entitlement
from ..serializers import AssignEntitlementSerializer, EntitlementSerializer
from ..tools.ledger import attach_resource, list_active_for_user
from ..tools.resources import find_owned_resource
from .helpers import get_request_user_id, query_flag


class EntitlementListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = EntitlementSerializer

    def get_queryset(self):
        user_id = get_request_user_id(self.request)
        if query_flag(self.request, "current", default=True):
            return list_active_for_user(user_id)
        return Entitlement.objects.filter(user_id=user_id).order_by("-issued_at")


class EntitlementAssignView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, public_id):
        user_id = get_request_user_id(request)
        serializer = AssignEntitlementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        resource = find_owned_resource(serializer.validated_data["job_post_id"], user_id)
        if resource is None:
            raise PurchaseNotFound("Job post not found or not owned by the current user.")

        entitlement = attach_resource(public_id, user_id=user_id, job_post_id=resource.id)
        return Response({"ok": True, "entitlement": EntitlementSerializer(entitlement).data})
