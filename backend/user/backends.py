"""
Authentication backend for the single curator account configured through
ADMIN_USERNAME / ADMIN_PASSWORD.
"""
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.backends import BaseBackend
from django.contrib.auth.hashers import check_password, identify_hasher
from django.utils.crypto import constant_time_compare

User = get_user_model()


def password_matches(password: str, expected: str) -> bool:
    """
    `expected` may be a Django password hash or plain text.
    Plain text is compared in constant time.
    """
    try:
        identify_hasher(expected)
    except ValueError:
        return constant_time_compare(password, expected)
    return check_password(password, expected)


class AdminCredentialsBackend(BaseBackend):
    """
    Authenticates against the configured curator credentials and maps the
    curator onto a Django staff user, created on first login.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        expected_username = settings.ADMIN_USERNAME
        expected_password = settings.ADMIN_PASSWORD
        if not expected_username or not expected_password:
            return None
        if username is None or password is None:
            return None

        if not constant_time_compare(username, expected_username):
            return None
        if not password_matches(password, expected_password):
            return None

        user, created = User.objects.get_or_create(
            username=expected_username,
            defaults={'is_staff': True, 'is_superuser': True},
        )
        if created:
            # The password lives in the environment, never in the database.
            user.set_unusable_password()
            user.save(update_fields=['password'])
        return user if user.is_active else None

    def get_user(self, user_id):
        try:
            user = User.objects.get(pk=user_id)
        except User.DoesNotExist:
            return None
        return user if user.is_active else None
