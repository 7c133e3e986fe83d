"""Route 53 client for domain availability checks and subdomain records.

Dependencies: boto3
"""
from __future__ import annotations
import logging
from typing import Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

SUBDOMAIN_TTL = 60
SUCCESS_CHANGE_STATUSES = ("PENDING", "INSYNC")


def extract_domain(subdomain: str) -> str:
    """Return the registrable domain (``app.flapi.org`` -> ``flapi.org``)."""
    parts = subdomain.split(".")
    if len(parts) < 2:
        return subdomain
    return ".".join(parts[-2:])


def extract_subdomain(subdomain: str) -> str:
    """Return the leftmost label (``app.flapi.org`` -> ``app``)."""
    parts = subdomain.split(".")
    if len(parts) < 2:
        return subdomain
    return parts[0]


class Route53Service:
    """Route 53 / Route 53 Domains operations used by the platform."""

    def __init__(self, cfg, route53_client=None, domains_client=None) -> None:
        """
        Initialize the AWS clients.

        The region is mandatory for botocore even though Route 53 is global.

        Args:
            cfg: Application configuration (credentials, region, load balancer IP)
            route53_client: Optional pre-built ``route53`` client
            domains_client: Optional pre-built ``route53domains`` client
        """
        self._loadbalancer_ip = cfg.aws_loadbalancer_ip
        credentials = {
            "region_name": cfg.aws_region or "us-east-1",
            "aws_access_key_id": cfg.aws_access_key_id or None,
            "aws_secret_access_key": cfg.aws_secret_access_key or None,
        }
        self._route53 = route53_client or boto3.client("route53", **credentials)
        self._domains = domains_client or boto3.client("route53domains", **credentials)

    def check_domain_availability(self, domain: str) -> bool:
        """
        Check a domain against the registrar.

        Returns:
            bool: True when the domain is already taken (status is not AVAILABLE)

        Raises:
            ClientError: If the registrar call fails
        """
        try:
            response = self._domains.check_domain_availability(DomainName=domain)
        except ClientError as exc:
            logger.error("Domain availability check failed for %s: %s", domain, exc)
            raise
        return response.get("Availability") != "AVAILABLE"

    def check_subdomain_availability(self, subdomain: str) -> bool:
        """
        Look for an existing record set named after the subdomain.

        Returns:
            bool: True when a record ``<subdomain>.`` already exists

        Raises:
            ClientError: If listing the record sets fails
        """
        hosted_zone_id = self.get_hosted_zone_id(subdomain)
        try:
            response = self._route53.list_resource_record_sets(HostedZoneId=hosted_zone_id or "")
        except ClientError as exc:
            logger.error("Subdomain availability check failed for %s: %s", subdomain, exc)
            raise
        # Route 53 record names carry a trailing dot
        expected = f"{subdomain}."
        return any(record.get("Name") == expected for record in response.get("ResourceRecordSets", []))

    def create_subdomain(self, subdomain: str) -> bool:
        """
        Create an A record pointing the subdomain at the cluster load balancer.

        Returns:
            bool: True when the change is PENDING or INSYNC

        Raises:
            ClientError: If the change is rejected (e.g. the record already exists)
        """
        hosted_zone_id = self.get_hosted_zone_id(subdomain)
        try:
            response = self._route53.change_resource_record_sets(
                HostedZoneId=hosted_zone_id or "",
                ChangeBatch={
                    "Changes": [
                        {
                            "Action": "CREATE",
                            "ResourceRecordSet": {
                                "Name": subdomain,
                                "Type": "A",
                                "TTL": SUBDOMAIN_TTL,
                                "ResourceRecords": [{"Value": self._loadbalancer_ip}],
                            },
                        }
                    ]
                },
            )
        except ClientError as exc:
            logger.error("Subdomain creation failed for %s: %s", subdomain, exc)
            raise
        status = response.get("ChangeInfo", {}).get("Status")
        logger.info("Subdomain %s change status: %s", subdomain, status)
        return status in SUCCESS_CHANGE_STATUSES

    def get_hosted_zone_id(self, subdomain: str) -> Optional[str]:
        """
        Find the hosted zone serving the subdomain's parent domain.

        Returns:
            Optional[str]: Zone id without the ``/hostedzone/`` prefix, or None
        """
        domain = extract_domain(subdomain)
        try:
            response = self._route53.list_hosted_zones()
        except ClientError as exc:
            logger.error("Error fetching hosted zones: %s", exc)
            return None

        for zone in response.get("HostedZones", []):
            if zone.get("Name") == f"{domain}." and zone.get("Id"):
                return zone["Id"].replace("/hostedzone/", "")

        logger.error("Hosted zone not found on AWS for domain: %s", domain)
        return None
