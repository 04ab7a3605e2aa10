import binascii
import ipaddress
import re

from base64 import b64decode
from django.core import validators
from django.forms import ValidationError
from string import ascii_uppercase
from typing import List, Optional, Union


# Don't allow uppercase at the API level
DNS_LABEL_RE = re.compile("^[-a-z0-9]+$")


def validate_label(label: str):
    if len(label) == 0:
        raise ValidationError("Domain label cannot be empty")
    if len(label) > 63:
        raise ValidationError("Domain label is too long")
    if label.startswith("-"):
        raise ValidationError("Domain label cannot start with hyphen")
    if label.endswith("-"):
        raise ValidationError("Domain label cannot end with hyphen")
    if "--" in label:
        raise ValidationError("Domain label cannot have multiple hyphens in a row")
    if "." in label:
        raise ValidationError("Domain label cannot contain a '.'")
    if any([upper in label for upper in ascii_uppercase]):
        raise ValidationError("Domain label should use lowercase")
    match = DNS_LABEL_RE.match(label)
    if match is None:
        raise ValidationError("Domain label has invalid characters")


def validate_domain_name(domain_name: str):
    domain_name = domain_name.removesuffix(".")
    if len(domain_name) > 253:
        raise ValidationError("Domain name too long")
    if len(domain_name) == 0:
        raise ValidationError("Domain name cannot be empty")
    for label in domain_name.lower().split("."):
        validate_label(label)


def validate_acme_dns01_txt_value(value: str):
    """
    We're only going to support an ACME DNS challenge response here
    """
    # Must be base64url encoded
    # https://datatracker.ietf.org/doc/html/draft-ietf-acme-acme-01#section-7.5

    if "+" in value or "/" in value:
        raise ValidationError(
            "ACME DNS-01 challenge response must be base64url encoded (not base64)"
        )

    if "=" in value:
        raise ValidationError(
            "ACME DNS-01 challenge response must not use padding (remove trailing =)"
        )

    # add the padding back
    modlen = len(value) % 4
    if modlen == 2:
        value += "=="
    elif modlen == 3:
        value += "="

    # convert to normal base64
    value = value.replace("-", "+").replace("_", "/")

    try:
        raw = b64decode(value, validate=True)
    except (binascii.Error, ValueError, TypeError):
        raise ValidationError(
            "ACME DNS-01 challenge response must be base64url encoded (decode failed)"
        )

    # raw must be sha256(challenge + thumbprint)
    if len(raw) != 32:
        raise ValidationError(
            "ACME DNS-01 challenge response must be SHA-256 hashed (incorrect length)"
        )


def parse_prefix(prefix) -> Optional[Union[ipaddress.IPv4Network, ipaddress.IPv6Network]]:
    """
    Parse "address/masklen" for IPv4 or IPv6, None when it doesn't parse.
    Host bits are accepted, "10.1.2.3/8" is the 10.0.0.0/8 network.
    """
    if not isinstance(prefix, str):
        return None
    prefix = prefix.strip()
    # A bare address would parse as a single host, require the mask
    if "/" not in prefix:
        return None
    try:
        return ipaddress.ip_network(prefix, strict=False)
    except ValueError:
        return None


def validate_allow_from(prefixes: Optional[List[str]]):
    """
    Fail closed: one bad entry rejects the whole list.
    An empty or missing list is valid and means "no source restriction".
    """
    if prefixes is None:
        return
    if not isinstance(prefixes, list):
        raise ValidationError("Allow list must be a list of network prefixes")
    for prefix in prefixes:
        if parse_prefix(prefix) is None:
            raise ValidationError(f"Invalid network prefix: {prefix}")


def valid_allow_from_entries(prefixes: Optional[List[str]]) -> List[str]:
    networks = [parse_prefix(prefix) for prefix in prefixes or []]
    return [str(network) for network in networks if network is not None]


def allow_from_permits(prefixes: Optional[List[str]], address: str) -> bool:
    networks = [parse_prefix(prefix) for prefix in prefixes or []]
    networks = [network for network in networks if network is not None]
    if not networks:
        return True
    try:
        ip = ipaddress.ip_address(address.strip())
    except ValueError:
        return False
    return any(ip in network for network in networks)


class DomainNameValidator(validators.BaseValidator):
    def __init__(self):
        pass

    def __call__(self, value):
        validate_domain_name(value)
