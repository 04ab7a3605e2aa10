import logging

from django.forms import ValidationError
from django.http import (
    HttpRequest,
    HttpResponse,
    JsonResponse,
)
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST
from http import HTTPStatus

from .decorators import (
    require_admin_key,
    require_api_key,
    use_custom_json_errors,
)
from .exceptions import NotFound, StorageFailure
from .forms import DnsCheckForm, UpdateNameForm
from .models import Account
from .network import check_challenge_cname
from .store import get_store
from .subdomain_utils import describe_account, register_account
from .utils import (
    CustomExceptionBadRequest,
    CustomExceptionServerError,
    parse_json_body,
)
from .validators import (
    validate_acme_dns01_txt_value,
    validate_allow_from,
    validate_label,
)


def form_errors(form) -> str:
    return ". ".join([k + ": " + " ".join(x for x in v) for k, v in form.errors.items()])


# acme-dns compat API to check health
@require_GET
def acmedns_api_health(
    _: HttpRequest,
) -> HttpResponse:
    # ACME DNS just returns 200 OK with no content
    # https://github.com/joohoi/acme-dns/blob/master/api.go#L111
    return HttpResponse("")


# Refer to:
# https://github.com/joohoi/acme-dns#register-endpoint
@use_custom_json_errors
@require_POST
@csrf_exempt
def acmedns_api_register(
    request: HttpRequest,
) -> JsonResponse:
    body = parse_json_body(request, allow_empty=True)

    allowfrom = body.get("allowfrom") or []
    try:
        validate_allow_from(allowfrom)
    except ValidationError:
        raise CustomExceptionBadRequest("invalid_allowfrom_cidr")

    label = body.get("domain_name") or ""
    if not isinstance(label, str):
        raise CustomExceptionBadRequest("invalid_domain_name")

    try:
        created = register_account(allowfrom, label)
    except StorageFailure as e:
        raise CustomExceptionServerError(f"Registration failed: {e.message}")

    logging.debug(f"Created new user {created.username}")
    return JsonResponse(
        created.get_config(),
        status=HTTPStatus.CREATED,
    )


# Refer to:
# https://github.com/joohoi/acme-dns/blob/835fbb9ef6cb918f7066b1b644c5e8e6a25608fc/api.go#L102
@use_custom_json_errors
@require_POST
@csrf_exempt
@require_api_key
def acmedns_api_update(
    request: HttpRequest,
    authenticated_account: Account,
) -> JsonResponse:
    body = parse_json_body(request)

    subdomain = body.get("subdomain")
    txt = body.get("txt")
    if not isinstance(subdomain, str) or not isinstance(txt, str):
        raise CustomExceptionBadRequest("malformed_json_payload")

    try:
        validate_label(subdomain)
    except ValidationError:
        raise CustomExceptionBadRequest("bad_subdomain")

    # The key only grants access to its own subdomain
    if subdomain != authenticated_account.subdomain:
        raise CustomExceptionBadRequest("forbidden", status_code=401)

    try:
        validate_acme_dns01_txt_value(txt)
    except ValidationError:
        raise CustomExceptionBadRequest("bad_txt")

    try:
        get_store().update_txt(subdomain, txt)
    except (StorageFailure, NotFound) as e:
        raise CustomExceptionServerError(f"Error while trying to update record: {e.message}")

    logging.debug(f"TXT updated for {subdomain}")
    return JsonResponse({"txt": txt})


@use_custom_json_errors
@require_GET
@require_admin_key
def list_domains(
    _: HttpRequest,
) -> JsonResponse:
    try:
        accounts = get_store().get_all()
    except StorageFailure as e:
        raise CustomExceptionServerError(f"Error fetching domains: {e.message}")

    return JsonResponse(
        [describe_account(account) for account in accounts],
        safe=False,
    )


@use_custom_json_errors
@require_POST
@csrf_exempt
@require_admin_key
def update_domain_name(
    request: HttpRequest,
) -> JsonResponse:
    form = UpdateNameForm(parse_json_body(request))
    if not form.is_valid():
        raise CustomExceptionBadRequest(form_errors(form))

    fulldomain = form.cleaned_data["fulldomain"]
    domain_name = form.cleaned_data["domain_name"]
    try:
        get_store().update_label(form.cleaned_data["subdomain"], domain_name)
    except NotFound:
        raise CustomExceptionBadRequest("Subdomain does not exist", status_code=404)
    except StorageFailure as e:
        raise CustomExceptionServerError(f"Error updating domain name: {e.message}")

    logging.debug(f"Domain name updated for {fulldomain}")
    return JsonResponse(
        {
            "success": True,
            "fulldomain": fulldomain,
            "domain_name": domain_name,
        }
    )


@use_custom_json_errors
@require_POST
@csrf_exempt
def dns_check(
    request: HttpRequest,
) -> JsonResponse:
    form = DnsCheckForm(parse_json_body(request))
    if not form.is_valid():
        raise CustomExceptionBadRequest(form_errors(form))

    return JsonResponse(
        check_challenge_cname(
            form.cleaned_data["domain"],
            form.cleaned_data["fulldomain"],
        )
    )
