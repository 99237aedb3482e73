"""
Certificate utilities for deployers.

Provides:
- Parsing the leaf certificate out of a PEM chain
- Splitting a PEM chain into server certificate and intermediates
- Hostname verification against the certificate's SAN entries
"""

import ipaddress

from cryptography import x509
from cryptography.hazmat.primitives import serialization


def parse_certificate_chain(certificate_pem: str) -> list[x509.Certificate]:
    """
    Parse every certificate of a PEM chain, leaf first.

    Args:
        certificate_pem: PEM text holding one or more certificates

    Returns:
        Parsed certificates in the order they appear

    Raises:
        ValueError: If the text holds no parseable certificate
    """
    try:
        certificates = x509.load_pem_x509_certificates(certificate_pem.encode())
    except ValueError as e:
        raise ValueError(f"Invalid certificate PEM: {e}") from e

    if not certificates:
        raise ValueError("Invalid certificate PEM: no certificate found")
    return certificates


def parse_leaf_certificate(certificate_pem: str) -> x509.Certificate:
    """Parse the first (leaf) certificate of a PEM chain."""
    return parse_certificate_chain(certificate_pem)[0]


def split_certificate_chain(certificate_pem: str) -> tuple[str, str]:
    """
    Split a PEM chain into the server certificate and its intermediates.

    Args:
        certificate_pem: Full chain PEM, leaf first

    Returns:
        (server certificate PEM, intermediate certificates PEM); the second
        element is empty when the chain holds a single certificate
    """
    certificates = parse_certificate_chain(certificate_pem)
    blocks = [
        certificate.public_bytes(serialization.Encoding.PEM).decode()
        for certificate in certificates
    ]
    return blocks[0], "".join(blocks[1:])


def get_dns_names(certificate: x509.Certificate) -> list[str]:
    """SAN DNS names of a certificate (empty when it has no SAN extension)."""
    try:
        san = certificate.extensions.get_extension_for_class(
            x509.SubjectAlternativeName
        ).value
    except x509.ExtensionNotFound:
        return []
    return san.get_values_for_type(x509.DNSName)


def _get_ip_addresses(
    certificate: x509.Certificate,
) -> list[ipaddress.IPv4Address | ipaddress.IPv6Address]:
    try:
        san = certificate.extensions.get_extension_for_class(
            x509.SubjectAlternativeName
        ).value
    except x509.ExtensionNotFound:
        return []
    return [
        address
        for address in san.get_values_for_type(x509.IPAddress)
        if isinstance(address, ipaddress.IPv4Address | ipaddress.IPv6Address)
    ]


def _normalize_hostname(name: str) -> str:
    return name.strip().lower().rstrip(".")


def match_hostname_pattern(pattern: str, hostname: str) -> bool:
    """
    Match a hostname against one certificate DNS name.

    A ``*`` is honoured only as the complete leftmost label and stands for
    exactly one label; ``*.example.com`` matches ``a.example.com`` but neither
    ``example.com`` nor ``a.b.example.com``.
    """
    pattern = _normalize_hostname(pattern)
    hostname = _normalize_hostname(hostname)
    if not pattern or not hostname:
        return False

    pattern_labels = pattern.split(".")
    host_labels = hostname.split(".")
    if len(pattern_labels) != len(host_labels):
        return False

    for index, (pattern_label, host_label) in enumerate(
        zip(pattern_labels, host_labels, strict=True)
    ):
        if index == 0 and pattern_label == "*":
            if not host_label:
                return False
            continue
        if pattern_label != host_label:
            return False
    return True


def verify_hostname(certificate: x509.Certificate, hostname: str) -> bool:
    """
    Check whether a certificate is valid for a hostname.

    IP literals are checked against SAN IP entries; names against SAN DNS
    entries. The subject common name is not consulted.

    Args:
        certificate: Parsed leaf certificate
        hostname: Hostname or IP address to verify

    Returns:
        True if the certificate would validate for the hostname
    """
    candidate = hostname.strip()
    if candidate.startswith("[") and candidate.endswith("]"):
        candidate = candidate[1:-1]

    try:
        address = ipaddress.ip_address(candidate)
    except ValueError:
        address = None

    if address is not None:
        return address in _get_ip_addresses(certificate)

    return any(
        match_hostname_pattern(pattern, candidate)
        for pattern in get_dns_names(certificate)
    )
