import logging

import dns.exception
import dns.resolver

from django.conf import settings
from typing import Dict, List

from .constants import ACME_CHALLENGE_LABEL
from .utils import remove_trailing_dot

ext_resolver = dns.resolver.Resolver(configure=False)
ext_resolver.nameservers = settings.ACMEDNS_CHECK_NAMESERVERS
ext_resolver.lifetime = 5.0


def dns_query_CNAME(domain: str) -> str:
    results = ext_resolver.resolve(domain, "CNAME")
    return str(results[0].target)


def dns_query_A(domain: str) -> List[str]:
    results = ext_resolver.resolve(domain, "A")
    return [rdata.address for rdata in results]


def dns_query_AAAA(domain: str) -> List[str]:
    results = ext_resolver.resolve(domain, "AAAA")
    return [rdata.address for rdata in results]


def host_addresses(domain: str) -> List[str]:
    """
    Addresses the name resolves to, following CNAMEs. Extra detail for the
    check response only, so lookup errors just leave the list short.
    """
    addresses = []
    for query in [dns_query_A, dns_query_AAAA]:
        try:
            addresses.extend(query(domain))
        except dns.exception.DNSException as e:
            logging.debug(f"Host lookup for {domain} failed: {e}")
    return sorted(set(addresses))


def check_challenge_cname(domain: str, fulldomain: str) -> Dict:
    """
    Look up _acme-challenge.<domain> and check it points at our subdomain
    """
    challenge_domain = f"{ACME_CHALLENGE_LABEL}.{remove_trailing_dot(domain)}"
    expected = f"{remove_trailing_dot(fulldomain)}."
    logging.debug(f"Checking CNAME of {challenge_domain}, expecting {expected}")

    try:
        cname = dns_query_CNAME(challenge_domain)
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        return {
            "valid": False,
            "has_cname": False,
            "cname_target": "",
            "expected": expected,
            "message": f"No CNAME record found. Please create a CNAME record for {challenge_domain} pointing to {expected}",
            "error": "NXDOMAIN",
        }
    except dns.exception.DNSException as e:
        logging.warning(f"DNS lookup for {challenge_domain} failed: {e}")
        return {
            "valid": False,
            "has_cname": False,
            "cname_target": "",
            "expected": expected,
            "message": f"DNS lookup failed: {e}",
            "error": "DNS_ERROR",
        }

    if not cname.endswith("."):
        cname += "."

    valid = cname.lower() == expected.lower()
    if valid:
        message = f"DNS configuration is correct! CNAME points to {cname}"
    else:
        message = f"CNAME points to wrong target. Found: {cname}, Expected: {expected}"
    return {
        "valid": valid,
        "has_cname": True,
        "cname_target": cname,
        "expected": expected,
        "message": message,
        "records": host_addresses(challenge_domain),
    }
