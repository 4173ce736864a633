from django.urls import path
from .views import (
    CheckoutPingView,
    DiscountsView,
    OrdersCollectionView,
    ProductDiscountView,
    ProductDetailView,
    ProductsView,
    QuoteView,
    RetrieveOrderView,
    ShippingZonesView,
)

app_name = "checkout"

urlpatterns = [
    path("ping/", CheckoutPingView.as_view(), name="ping"),
    path("products/", ProductsView.as_view(), name="products"),
    path("products/<str:product_id>/", ProductDetailView.as_view(), name="product-detail"),
    path("discounts/", DiscountsView.as_view(), name="discounts"),
    path("discounts/<str:product_id>/", ProductDiscountView.as_view(), name="product-discount"),
    path("zones/", ShippingZonesView.as_view(), name="zones"),
    path("quote/", QuoteView.as_view(), name="quote"),
    path("orders/", OrdersCollectionView.as_view(), name="orders-collection"),  # GET list / POST submit
    path("orders/<uuid:oid>/", RetrieveOrderView.as_view(), name="orders-detail"),
]
