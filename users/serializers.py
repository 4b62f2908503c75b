from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import display_name

User = get_user_model()


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Login using email + password and return SimpleJWT refresh/access tokens.
    POST body: {"email": "...", "password": "..."}
    """
    email = serializers.EmailField(write_only=True)
    password = serializers.CharField(write_only=True, trim_whitespace=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Remove the parent-added username field so the browsable form shows only Email + Password.
        self.fields.pop(self.username_field, None)

    def validate(self, attrs):
        email = attrs.get("email")
        password = attrs.get("password")

        user = User.objects.filter(email__iexact=email).first()
        if user is None or not user.check_password(password):
            raise AuthenticationFailed("No active account found with the given credentials")
        if not user.is_active:
            raise AuthenticationFailed("User account is disabled")

        refresh = self.get_token(user)
        return {"refresh": str(refresh), "access": str(refresh.access_token)}


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user representation embedded in messages and conversations."""

    name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "username", "name", "email"]
        read_only_fields = fields

    def get_name(self, obj):
        return display_name(obj)
