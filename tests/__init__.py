"""GrindProof Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - store/: per-table CRUD and ownership checks
  - analysis/: rule-based pattern detection and weekly metrics
  - ai/: coach flows, response contracts, local task parser
  - integrations/: GitHub, Google Calendar and calendar mirroring
  - checkins/: morning plan and evening reflection
  - security/: session tokens
- integration/: API endpoint tests through the FastAPI test client

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/store/
"""
