"""Core business logic.

Module Structure:
    - keycloak/               : Keycloak admin and session client
    - route53.py              : DNS (Route 53 / Route 53 Domains)
    - github.py               : Template repositories and workflow dispatch
    - cpanel.py               : Hosted MySQL databases (cPanel UAPI)
    - mail_service.py         : Transactional email (SMTP / Mailjet)
    - sms_service.py          : SMS gateway (Textbee)
    - auth_service.py         : Sign-up, sign-in, activation
    - project_service.py, team_service.py, database_service.py : CRUD
    - provisioning_service.py : New application provisioning sequence
    - audit.py                : Signed JSONL audit trail
    - models.py, db.py        : SQLAlchemy persistence
    - validators.py           : Payload validation

These modules are NOT auto-imported; import them explicitly.
"""
