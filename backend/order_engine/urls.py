from django.urls import include, path

urlpatterns = [
    path('api/pricing/', include('pricing.urls')),
]
