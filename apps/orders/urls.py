from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'orders'

router = DefaultRouter()
router.register(r'', views.OrderViewSet, basename='order')

urlpatterns = [
    # GET    /api/orders/         - List own orders
    # POST   /api/orders/         - Place an order
    # GET    /api/orders/{id}/    - Order details
    path('', include(router.urls)),
]
