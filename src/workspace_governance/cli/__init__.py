"""Command-line interface for Workspace Governance"""
