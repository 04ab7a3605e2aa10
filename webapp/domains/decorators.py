import functools
import hmac
import logging
import uuid

from .constants import API_KEY_HEADER, API_USER_HEADER
from .exceptions import MigrationFailure, NotFound, StorageFailure
from .store import get_store
from .utils import (
    CustomException,
    CustomExceptionBadRequest,
    CustomExceptionServerError,
    source_address,
)
from .validators import allow_from_permits
from django.conf import settings
from django.http import (
    HttpRequest,
)


def use_custom_json_errors(view_fn):
    @functools.wraps(view_fn)
    def fn(*args, **kwargs):
        try:
            return view_fn(*args, **kwargs)
        except CustomException as e:
            return e.render_json()
        except MigrationFailure as e:
            return CustomExceptionServerError(f"Store unavailable: {e.message}").render_json()

    return fn


# See https://github.com/joohoi/acme-dns#update-endpoint
def require_api_key(view_fn):
    @functools.wraps(view_fn)
    def fn(request: HttpRequest, *args, **kwargs):
        # Require both
        for header in [API_USER_HEADER, API_KEY_HEADER]:
            if header not in request.headers:
                raise CustomExceptionBadRequest(f"Missing required header {header}")
        provided_username = request.headers[API_USER_HEADER]
        provided_key = request.headers[API_KEY_HEADER]

        try:
            uuid.UUID(provided_username)
        except ValueError:
            raise CustomExceptionBadRequest("forbidden", status_code=401)

        try:
            account = get_store().get_by_username(provided_username)
        except NotFound:
            logging.debug(f"Unknown user {provided_username}")
            raise CustomExceptionBadRequest("forbidden", status_code=401)
        except StorageFailure as e:
            raise CustomExceptionServerError(f"Lookup failed: {e.message}")

        if not account.check_password(provided_key):
            logging.debug(f"Bad key for user {provided_username}")
            raise CustomExceptionBadRequest("forbidden", status_code=401)

        address = source_address(request)
        if not allow_from_permits(account.allow_from, address):
            logging.debug(f"Update from {address} not allowed for {provided_username}")
            raise CustomExceptionBadRequest("forbidden", status_code=401)

        kwargs["authenticated_account"] = account
        return view_fn(request, *args, **kwargs)

    return fn


def require_admin_key(view_fn):
    @functools.wraps(view_fn)
    def fn(request: HttpRequest, *args, **kwargs):
        expected = settings.ACMEDNS_ADMIN_API_KEY
        provided = request.headers.get(API_KEY_HEADER, "")
        # No configured key means the admin endpoints are closed
        if not expected or not hmac.compare_digest(
            provided.encode("utf-8"), expected.encode("utf-8")
        ):
            raise CustomExceptionBadRequest("unauthorized", status_code=401)
        return view_fn(request, *args, **kwargs)

    return fn
