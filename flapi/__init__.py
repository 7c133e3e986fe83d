"""Flapi backend package.

To build the Flask app:
    from flapi.flask_app import create_app

To use the external platform clients:
    from flapi.core.route53 import Route53Service
    from flapi.core.github import GitHubService
    from flapi.core.cpanel import CpanelService
"""
