"""Claims Rules Engine Backend Package.

This package provides the FastAPI backend for configurable claim
questionnaire rules, including:

- Rule evaluation engine (conditions, actions, eligibility)
- SQLite rule store with audit trail
- Rule templates and authoring catalog
- Submission check for required documents

Usage:
    # Development (from project root):
    PYTHONPATH=backend uvicorn app:app --reload --port 8080

    # Seed rules from a YAML or JSON file:
    PYTHONPATH=backend python scripts/seed_rules.py scripts/seed_rules.yaml

Modules:
    app: FastAPI application entry point
    rules: Rule evaluation engine and rule store
    routes: API routers (rules, claims)
    schemas: Pydantic request models
    templates: YAML rule templates
    utils: Date parsing and filename sanitization
"""

__version__ = "0.1.0"
