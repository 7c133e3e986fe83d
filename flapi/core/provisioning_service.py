"""
Application provisioning: DNS, databases, repository and CI for a new customer app.

Architecture:
    POST /client/app/create ──> provisioning_service.py ──┬──> route53.py  ──> Route 53
                                                          ├──> cpanel.py   ──> cPanel UAPI
                                                          └──> github.py   ──> GitHub REST

Sequence:
    1. validate payload
    2. every ``<env>.<subdomain>.<platform domain>`` must be free
    3. create the subdomains
    4. create and link one MySQL database per environment
    5. create the repository from its template
    6. wait, then dispatch the deployment workflow

The steps run in order and stop at the first failure. Side effects of the
steps already completed are left in place and listed in the error.
"""
from __future__ import annotations
import logging
import re
import time
from typing import Any, Callable, Optional

from botocore.exceptions import ClientError

from flapi.config import get_config
from flapi.core import audit
from flapi.core.cpanel import CpanelService
from flapi.core.exceptions import ApiError, ExternalServiceError
from flapi.core.github import GitHubService
from flapi.core.route53 import Route53Service
from flapi.core.validators import validate_create_application_payload

logger = logging.getLogger(__name__)

REPOSITORY_FAILED_MESSAGE = "Unable to create the repository."
WORKFLOW_FAILED_MESSAGE = "The repository was created, but triggering the workflow failed."


class ProvisioningError(ApiError):
    """A provisioning step failed; ``completed_steps`` lists what was applied."""

    code = "E_PROVISIONING_FAILED"

    def __init__(self, message: str, status: int, completed_steps: list[str], step: str):
        self.step = step
        self.completed_steps = list(completed_steps)
        super().__init__(
            message,
            status=status,
            success=False,
            failed_step=step,
            completed_steps=self.completed_steps,
        )


def database_name_for(base: str, environment: str) -> str:
    """cPanel database name for an environment (``my-app`` + ``dev`` -> ``my_app_dev``)."""
    return re.sub(r"[^A-Za-z0-9_]", "_", f"{base}_{environment}")


class ApplicationProvisioner:
    """Runs the provisioning sequence for one request.

    External clients default to ones built from the application
    configuration and can be injected for tests or scripts.
    """

    def __init__(
        self,
        cfg,
        route53: Optional[Route53Service] = None,
        github: Optional[GitHubService] = None,
        cpanel: Optional[CpanelService] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cfg = cfg
        self.route53 = route53 or Route53Service(cfg)
        self.github = github or GitHubService(cfg)
        self.cpanel = cpanel or CpanelService(cfg)
        self.sleep = sleep
        self.completed_steps: list[str] = []

    def _fail(self, step: str, message: str, status: int, error: Optional[Exception] = None) -> ProvisioningError:
        if error is not None:
            logger.error("Provisioning step '%s' failed: %s", step, error)
        else:
            logger.error("Provisioning step '%s' failed: %s", step, message)
        return ProvisioningError(message, status, self.completed_steps, step)

    def fqdn(self, environment: str, subdomain: str) -> str:
        return f"{environment}.{subdomain}.{self.cfg.aws_domain}"

    def run(self, data: dict) -> dict:
        """Execute every step; ``data`` is a validated payload.

        Returns:
            Success body (repository, workflow, subdomains, databases)

        Raises:
            ProvisioningError: At the first failing step
        """
        if not self.cfg.aws_domain:
            raise self._fail("configuration", "The platform domain (AWS_DOMAIN_FLAPI) is not configured.", 500)

        hostnames = [self.fqdn(env, data["subdomain"]) for env in data["environments"]]
        repo = data["new_repo_name"]
        workflow = data["workflow_name"]

        # Step 1: availability
        for hostname in hostnames:
            try:
                taken = self.route53.check_subdomain_availability(hostname)
            except ClientError as exc:
                raise self._fail("check_subdomain", f"Unable to check the subdomain {hostname}.", 502, exc)
            if taken:
                raise self._fail("check_subdomain", f"The subdomain {hostname} already exists.", 409)

        # Step 2: DNS records
        for hostname in hostnames:
            try:
                created = self.route53.create_subdomain(hostname)
            except ClientError as exc:
                raise self._fail("create_subdomain", f"Unable to create the subdomain {hostname}.", 502, exc)
            if not created:
                raise self._fail("create_subdomain", f"Unable to create the subdomain {hostname}.", 502)
            self.completed_steps.append(f"subdomain:{hostname}")

        # Step 3: one database per environment
        base_name = data.get("database_name") or repo
        databases = []
        for environment in data["environments"]:
            name = database_name_for(base_name, environment)
            try:
                created = self.cpanel.create_database(name)
                if created:
                    self.completed_steps.append(f"database:{name}")
                    created = self.cpanel.link_user_to_database(name)
            except ExternalServiceError as exc:
                raise self._fail("create_database", f"Unable to create the database {name}.", 502, exc)
            if not created:
                raise self._fail("create_database", f"Unable to create the database {name}.", 502)
            databases.append(name)

        # Step 4: repository
        try:
            created = self.github.create_repository_from_template(
                data["template_repo"],
                repo,
                description=data["new_description_repo"],
                private=data["new_private_repo"],
            )
        except ExternalServiceError as exc:
            raise self._fail("create_repository", REPOSITORY_FAILED_MESSAGE, 500, exc)
        if not created:
            raise self._fail("create_repository", REPOSITORY_FAILED_MESSAGE, 500)
        self.completed_steps.append(f"repository:{repo}")

        # Step 5: blind wait for GitHub to finish generating the repository
        self.sleep(self.cfg.workflow_dispatch_delay)

        try:
            workflows = self.github.list_workflows(repo)
            logger.debug("Workflows found in %s: %s", repo, workflows)
            dispatched = self.github.trigger_workflow(
                repo, workflow, data["workflow_branch"], data["workflow_inputs"]
            )
        except ExternalServiceError as exc:
            raise self._fail("trigger_workflow", WORKFLOW_FAILED_MESSAGE, 500, exc)
        if not dispatched:
            raise self._fail("trigger_workflow", WORKFLOW_FAILED_MESSAGE, 500)
        self.completed_steps.append(f"workflow:{workflow}")

        logger.info("Application %s provisioned (%d environments)", repo, len(hostnames))
        return {
            "success": True,
            "message": f'The repository "{repo}" was created, and the workflow "{workflow}" was triggered.',
            "repository": repo,
            "workflow": workflow,
            "subdomains": hostnames,
            "databases": databases,
        }


def create_new_application(payload: Any, provisioner: Optional[ApplicationProvisioner] = None) -> dict:
    """Validate the payload and provision the application.

    Every outcome is written to the audit trail.

    Raises:
        ValidationError: On invalid payload (nothing is created)
        ProvisioningError: When a step fails
    """
    data = validate_create_application_payload(payload)
    cfg = get_config()
    provisioner = provisioner or ApplicationProvisioner(cfg)

    try:
        result = provisioner.run(data)
    except ProvisioningError as exc:
        audit.safe_log_event(
            "provisioning_failed",
            data["new_repo_name"],
            details={"step": exc.step, "message": exc.message, "completed_steps": exc.completed_steps},
            success=False,
            signing_key=cfg.audit_log_signing_key,
        )
        raise

    audit.safe_log_event(
        "provisioning_completed",
        data["new_repo_name"],
        details={"subdomains": result["subdomains"], "databases": result["databases"]},
        signing_key=cfg.audit_log_signing_key,
    )
    return result
