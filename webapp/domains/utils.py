import json
import logging

from django.conf import settings
from django.http import (
    HttpRequest,
    JsonResponse,
)
from requests.structures import CaseInsensitiveDict
from typing import Optional


class CustomException(Exception):
    pass


class CustomExceptionBadRequest(CustomException):
    """
    When the client provides bad input, give the user a detailed 4xx response
    """

    def __init__(self, message, status_code=400):
        self.message = message
        self.status_code = status_code

    def render_json(self):
        assert self.status_code >= 400 and self.status_code < 500
        return JsonResponse(
            {
                "error": self.message,
            },
            status=self.status_code,
        )


class CustomExceptionServerError(CustomException):
    """
    When there's a server side error, log it and give the user a vague 5xx response
    """

    def __init__(self, message, status_code=500):
        self.message = message
        self.status_code = status_code

    def render_json(self):
        assert self.status_code >= 500
        logging.error(f"Unable to process request: {self.message}")
        return JsonResponse(
            {
                "error": "Unable to process request",
            },
            status=self.status_code,
        )


def parse_json_body(request: HttpRequest, allow_empty: bool = False) -> CaseInsensitiveDict:
    if allow_empty and not request.body.strip():
        return CaseInsensitiveDict({})
    try:
        body = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        # Bare POSTs (form or multipart bodies) register with defaults
        if allow_empty and request.content_type != "application/json":
            return CaseInsensitiveDict({})
        raise CustomExceptionBadRequest("malformed_json_payload")
    if not isinstance(body, dict):
        raise CustomExceptionBadRequest("malformed_json_payload")
    return CaseInsensitiveDict(body)


def remove_trailing_dot(dn: str) -> str:
    if dn.endswith("."):
        return dn[:-1]
    return dn


def subdomain_from_fulldomain(fulldomain: str) -> Optional[str]:
    fulldomain = remove_trailing_dot(fulldomain).lower()
    suffix = f".{settings.ACMEDNS_DOMAIN}"
    if not fulldomain.endswith(suffix):
        return None
    return fulldomain.removesuffix(suffix) or None


def source_address(request: HttpRequest) -> str:
    """
    Client address used for allow list checks. Behind a proxy, the first
    entry of the configured header is the client.
    """
    if settings.ACMEDNS_USE_HEADER:
        header = request.headers.get(settings.ACMEDNS_HEADER_NAME, "")
        return header.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR", "")
