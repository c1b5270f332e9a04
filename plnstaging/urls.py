from django.urls import include
from django.urls import path

urlpatterns = [
    path('api/sword/2.0/', include('deposit.urls')),
]
