import logging
from uuid import UUID

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from rentalhub.modules.paginations import CustomLimitOffsetPagination
from rentalhub.modules.utils import (
    api_response,
    get_incoming_request_checks,
    incoming_request_checks,
)
from .models import Product
from .serializers import ProductCreateSerializer, ProductSerializer

logger = logging.getLogger(__name__)


def serializer_error_message(errors):
    return ", ".join(
        f"{field}: {', '.join(str(e) for e in field_errors)}"
        for field, field_errors in errors.items()
    ) or "Invalid data"


class ProductListCreateView(APIView):
    permission_classes = [IsAuthenticated]
    pagination_class = CustomLimitOffsetPagination

    @swagger_auto_schema(
        operation_description="List rentable products",
        manual_parameters=[
            openapi.Parameter(
                'owner', openapi.IN_QUERY, description="Filter by owner ID",
                type=openapi.TYPE_STRING, required=False
            ),
            openapi.Parameter(
                'category', openapi.IN_QUERY, description="Filter by category", # noqa
                type=openapi.TYPE_STRING, required=False
            ),
            openapi.Parameter(
                'status', openapi.IN_QUERY,
                description="Filter by status (available, rented)",
                type=openapi.TYPE_STRING, required=False
            ),
        ],
        responses={200: ProductSerializer(many=True)}
    )
    def get(self, request):
        status_, data = get_incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST
            )

        queryset = Product.objects.select_related('owner').order_by(
            '-updated_at', '-created_at')

        owner = request.query_params.get('owner')
        if owner:
            try:
                queryset = queryset.filter(owner_id=UUID(owner))
            except ValueError:
                return Response(
                    api_response(message="Invalid owner ID.", status=False),
                    status=status.HTTP_400_BAD_REQUEST
                )
        category = request.query_params.get('category')
        if category:
            queryset = queryset.filter(category__iexact=category)
        product_status = request.query_params.get('status')
        if product_status:
            queryset = queryset.filter(status=product_status)

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(queryset, request)
        serializer = ProductSerializer(page, many=True)
        return Response(api_response(
            message="Products retrieved successfully.",
            status=True,
            data=paginator.get_paginated_data(serializer.data)
        ))

    @swagger_auto_schema(
        operation_description="List a new product for rent",
        request_body=ProductCreateSerializer,
        responses={201: ProductSerializer()}
    )
    def post(self, request):
        status_, data = incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST
            )

        serializer = ProductCreateSerializer(data=data)
        if not serializer.is_valid():
            return Response(
                api_response(
                    message=serializer_error_message(serializer.errors),
                    status=False,
                    data=serializer.errors,
                ),
                status=status.HTTP_400_BAD_REQUEST
            )
        product = serializer.save(owner=request.user)
        logger.info(f"Product {product.id} listed by {request.user.email}")
        return Response(
            api_response(
                message="Product created successfully.",
                status=True,
                data=ProductSerializer(product).data
            ),
            status=status.HTTP_201_CREATED
        )


class ProductDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        operation_description="Retrieve product details",
        responses={200: ProductSerializer()}
    )
    def get(self, request, product_id):
        status_, data = get_incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST
            )
        product = Product.objects.select_related('owner').filter(
            id=product_id).first()
        if product is None:
            return Response(
                api_response(message="Product not found.", status=False),
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(api_response(
            message="Product retrieved successfully.",
            status=True,
            data=ProductSerializer(product).data
        ))

    @swagger_auto_schema(
        operation_description="Partially update product details (owner only)", # noqa
        request_body=ProductCreateSerializer,
        responses={200: ProductSerializer()}
    )
    def patch(self, request, product_id):
        status_, data = incoming_request_checks(request)
        if not status_:
            return Response(
                api_response(message=data, status=False),
                status=status.HTTP_400_BAD_REQUEST
            )
        product = Product.objects.filter(id=product_id).first()
        if product is None:
            return Response(
                api_response(message="Product not found.", status=False),
                status=status.HTTP_404_NOT_FOUND
            )
        if product.owner_id != request.user.id:
            return Response(
                api_response(
                    message="You do not have permission to update this product.",  # noqa
                    status=False
                ),
                status=status.HTTP_403_FORBIDDEN
            )
        serializer = ProductCreateSerializer(product, data=data, partial=True)
        if not serializer.is_valid():
            return Response(
                api_response(
                    message=serializer_error_message(serializer.errors),
                    status=False,
                    data=serializer.errors,
                ),
                status=status.HTTP_400_BAD_REQUEST
            )
        serializer.save()
        return Response(api_response(
            message="Product updated successfully.",
            status=True,
            data=ProductSerializer(product).data
        ))
