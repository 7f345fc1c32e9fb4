"""
Authentication backend that accepts an email address or a username.
"""

from django.contrib.auth.backends import ModelBackend
from django.contrib.auth import get_user_model

User = get_user_model()


class EmailOrUsernameBackend(ModelBackend):
    """
    Let users log in with either their email address or their username.

    Identifiers containing '@' are looked up by email (case-insensitive),
    everything else by username.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        """
        Args:
            request: HTTP request object
            username: Email address or username
            password: User password
            **kwargs: May carry 'email' or 'identifier' instead of username

        Returns:
            User object if authentication successful, None otherwise
        """
        identifier = kwargs.get('identifier') or kwargs.get('email') or username

        if identifier is None or password is None:
            return None

        identifier = identifier.strip()
        lookup = {'email__iexact': identifier} if '@' in identifier else {'username': identifier}

        try:
            user = User.objects.get(**lookup)
        except User.DoesNotExist:
            # Run the default password hasher once to reduce the timing
            # difference between an existing and a nonexistent user
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user

        return None

    def get_user(self, user_id):
        try:
            return User.objects.get(pk=user_id)
        except User.DoesNotExist:
            return None
