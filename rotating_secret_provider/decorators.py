"""Decorators wiring secret providers and bearer token checks into plain functions """
import functools
import logging

from rotating_secret_provider.exceptions import Unauthorized, Forbidden, InvalidToken

BEARER_PREFIX = "Bearer "


class InjectSecretString:
    """Decorator injecting the live secret from a provider"""

    def __init__(self, provider):
        """
        Constructs a decorator to inject the current secret as the first non-keyworded argument.

        The secret is read on every call so a rotation is picked up immediately.

        :type provider: rotating_secret_provider.SecretProvider
        :param provider: The provider to read the secret from
        """

        self.provider = provider

    def __call__(self, func):
        """
        Return a function with the current secret injected as first argument.

        :type func: object
        :param func: The function for injecting a single non-keyworded argument too.
        :return The function with the injected argument.
        """

        @functools.wraps(func)
        def _wrapped_func(*args, **kwargs):
            """
            Internal function to execute wrapped function
            """
            return func(self.provider.get_secret(), *args, **kwargs)

        return _wrapped_func


class RequirePermissions:
    """Decorator guarding a function with a bearer token carrying permissions"""

    def __init__(self, jwt_service, *permissions):
        """
        Construct a decorator that validates an ``Authorization`` header before calling a function.

        The wrapped function receives the header value as its first argument; the decorated
        function receives the validated claims in its place.

        :type jwt_service: rotating_secret_provider.JWTService
        :param jwt_service: service used to validate tokens

        :type permissions: str
        :param permissions: every permission the token must carry
        """

        self.jwt_service = jwt_service
        self.permissions = permissions

    def authorize(self, authorization):
        """
        Validate an ``Authorization`` header value and return its claims.

        :raises Unauthorized: header missing, not a bearer token or token invalid
        :raises Forbidden: token lacks a required permission
        """
        if not authorization:
            raise Unauthorized("Authorization header is required")
        if not authorization.startswith(BEARER_PREFIX):
            raise Unauthorized("Authorization header must use Bearer token")
        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            raise Unauthorized("Bearer token is required")

        try:
            claims = self.jwt_service.validate_token(token)
        except InvalidToken:
            raise Unauthorized("Invalid or expired token") from None

        if not claims.has_all_permissions(self.permissions):
            logging.getLogger(__name__).warning(
                f"Token for {claims.subject} lacks permissions {list(self.permissions)}")
            raise Forbidden("Insufficient permissions")
        return claims

    def __call__(self, func):

        @functools.wraps(func)
        def _wrapped_func(authorization, *args, **kwargs):
            """
            Internal function to execute wrapped function
            """
            return func(self.authorize(authorization), *args, **kwargs)

        return _wrapped_func
