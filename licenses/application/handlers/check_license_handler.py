"""
CheckLicenseHandler.

Answers "does this email hold a license?" from the local customer record
first, then from Keygen's metadata search.
"""

from core.domain.value_objects import Email
from core.ports.keygen_gateway import KeygenGateway
from licenses.application.dto.license_dto import LicenseCheckDTO
from licenses.application.queries.check_license import CheckLicenseQuery
from licenses.domain.services import plan_from_policy
from licenses.ports.customer_repository import CustomerRepository


class CheckLicenseHandler:
    """Handler for CheckLicenseQuery."""

    def __init__(self, customer_repository: CustomerRepository, keygen: KeygenGateway):
        """Initialize handler with repository and Keygen gateway."""
        self.customer_repository = customer_repository
        self.keygen = keygen

    async def handle(self, query: CheckLicenseQuery) -> LicenseCheckDTO:
        """
        Handle check license query.

        Args:
            query: CheckLicenseQuery

        Returns:
            LicenseCheckDTO; status ``none`` when nothing is found

        Raises:
            InvalidRequestError: If the email is missing or malformed
        """
        email = Email(query.email or "").value

        customer = await self.customer_repository.find_by_email(email)
        if customer and customer.keygen_license_id and customer.has_active_subscription:
            return LicenseCheckDTO(
                status="active",
                email=email,
                license_key=customer.keygen_license_key,
                license_id=customer.keygen_license_id,
                plan=customer.account_type or "individual",
            )

        licenses = await self.keygen.get_licenses_by_email(email)
        found = next(
            (lic for lic in licenses if (lic.status or "").lower() == "active"),
            licenses[0] if licenses else None,
        )
        if found is None:
            return LicenseCheckDTO(status="none", email=email)

        return LicenseCheckDTO(
            status=(found.status or "unknown").lower(),
            email=email,
            license_key=found.key,
            license_id=found.id,
            plan=plan_from_policy(found.policy_id),
            expires_at=found.expires_at,
            include_expiry=True,
        )
