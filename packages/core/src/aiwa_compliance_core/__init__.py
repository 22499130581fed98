"""Compliance rules, configuration and GitHub actions for AiWA ComplianceBot."""
