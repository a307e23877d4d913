from rest_framework.routers import DefaultRouter

from .views import ClientViewSet, ExpenseViewSet, InvoiceViewSet, QuoteViewSet

router = DefaultRouter()
router.register(r"clients", ClientViewSet, basename="client")
router.register(r"invoices", InvoiceViewSet, basename="invoice")
router.register(r"quotes", QuoteViewSet, basename="quote")
router.register(r"expenses", ExpenseViewSet, basename="expense")

urlpatterns = router.urls
