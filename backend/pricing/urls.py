from django.urls import path
from .views import InvoiceComputeView

app_name = 'pricing'

urlpatterns = [
    path('invoice/compute', InvoiceComputeView.as_view(), name='invoice-compute'),
]
