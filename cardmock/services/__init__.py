"""Service layer: approvals, notifications, email delivery and external integrations."""
