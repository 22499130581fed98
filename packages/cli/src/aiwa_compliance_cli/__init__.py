"""Command-line interface for AiWA ComplianceBot."""
