"""
Authentication endpoints for the users app.

Login is via email + password and returns a SimpleJWT token pair.
"""
from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from .views import EmailTokenObtainPairView

urlpatterns = [
    path("login/", EmailTokenObtainPairView.as_view(), name="login"),
    path("token/", EmailTokenObtainPairView.as_view(), name="token_obtain_pair_email"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
]
