"""GitHub REST client: template repositories, workflow dispatch, branch protection."""
from __future__ import annotations
import logging
from typing import Dict, List, Optional
from urllib.parse import quote

import requests

from flapi.core.exceptions import ExternalServiceError

GITHUB_API_URL = "https://api.github.com"
REQUEST_TIMEOUT = 10
PROTECTED_BRANCHES = ("main", "staging", "develop")

logger = logging.getLogger(__name__)


class GitHubService:
    """Operations on repositories owned by the configured user or organization."""

    def __init__(self, cfg):
        self.owner = cfg.github_owner
        self.headers = {
            "Authorization": f"token {cfg.github_token}",
            "Accept": "application/vnd.github+json",
        }

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            resp = requests.request(method, url, headers=self.headers, timeout=REQUEST_TIMEOUT, **kwargs)
        except requests.RequestException as exc:
            logger.error("GitHub %s %s failed: %s", method, url, exc)
            raise ExternalServiceError("github", str(exc)) from exc
        if resp.status_code >= 400:
            logger.error("GitHub %s %s returned %s: %s", method, url, resp.status_code, resp.text)
            raise ExternalServiceError("github", resp.text or resp.reason, resp.status_code)
        return resp

    def create_repository_from_template(
        self,
        template_repo: str,
        new_repo_name: str,
        description: str = "",
        private: bool = False,
    ) -> bool:
        """Generate a repository from a template, with all its branches.

        Returns:
            True when GitHub answers 201 Created
        """
        url = f"{GITHUB_API_URL}/repos/{self.owner}/{template_repo}/generate"
        payload = {
            "owner": self.owner,
            "name": new_repo_name,
            "description": description or "",
            "private": bool(private),
            "include_all_branches": True,
        }
        resp = self._request("POST", url, json=payload)
        logger.info("Repository %s/%s generated from %s", self.owner, new_repo_name, template_repo)
        return resp.status_code == 201

    def trigger_workflow(self, repo: str, workflow_name: str, ref: str, inputs: Optional[Dict[str, str]] = None) -> bool:
        """Dispatch a workflow_dispatch event.

        Returns:
            True when GitHub answers 204 No Content
        """
        encoded = quote(workflow_name, safe="")
        url = f"{GITHUB_API_URL}/repos/{self.owner}/{repo}/actions/workflows/{encoded}/dispatches"
        resp = self._request("POST", url, json={"ref": ref, "inputs": inputs or {}})
        return resp.status_code == 204

    def list_workflows(self, repo: str) -> List[dict]:
        url = f"{GITHUB_API_URL}/repos/{self.owner}/{repo}/actions/workflows"
        resp = self._request("GET", url)
        try:
            workflows = resp.json().get("workflows", [])
        except (ValueError, AttributeError) as exc:
            raise ExternalServiceError("github", "Invalid workflows listing", resp.status_code) from exc
        logger.info("Available workflows for %s: %s", repo, [w.get("path") for w in workflows])
        return workflows

    def protect_branches(self, repo: str) -> None:
        """Require one approving review and lock main, staging and develop."""
        rules = {
            "required_pull_request_reviews": {"required_approving_review_count": 1},
            "lock_branch": True,
            "required_status_checks": None,
            "enforce_admins": None,
            "restrictions": None,
        }
        for branch in PROTECTED_BRANCHES:
            url = f"{GITHUB_API_URL}/repos/{self.owner}/{repo}/branches/{branch}/protection"
            self._request("PUT", url, json=rules)
            logger.info("Protection applied to branch '%s' of repository '%s'", branch, repo)
