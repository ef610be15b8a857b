"""
Stateless JWT authentication for Django REST Framework

Tokens are issued by the identity service; this backend never stores users.
The claims carry everything the approval workflow needs: the caller's user id,
tenant id and flat list of permission codes.
"""
from rest_framework import exceptions
from rest_framework_simplejwt.authentication import JWTStatelessUserAuthentication


class ActorUser:
    """
    Represents an authenticated caller built from token claims
    """

    is_authenticated = True
    is_anonymous = False

    def __init__(self, user_id, tenant_id, permissions=None, email=None, token=None):
        self.user_id = user_id
        self.tenant_id = tenant_id
        self.permissions = list(permissions or [])
        self.email = email
        self.token = token

    @property
    def pk(self):
        return self.user_id

    def __str__(self):
        return f"ActorUser({self.email or self.user_id})"


class StatelessJWTAuthentication(JWTStatelessUserAuthentication):
    """
    Validates the bearer token and maps its claims onto an ActorUser
    """

    def get_user(self, validated_token):
        user_id = validated_token.get('user_id')
        tenant_id = validated_token.get('tenant_id')

        if not user_id:
            raise exceptions.AuthenticationFailed('Invalid token payload')
        if not tenant_id:
            raise exceptions.AuthenticationFailed('Organization context required. Please select an organization.')

        return ActorUser(
            user_id=user_id,
            tenant_id=tenant_id,
            permissions=validated_token.get('permissions') or [],
            email=validated_token.get('email'),
            token=validated_token,
        )
