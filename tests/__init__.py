# =============================================================================
# RAIN ALERT ENGINE - TEST SUITE
# =============================================================================
#
# Structure:
#   tests/
#     unit/           - Unit Tests (distance, directory, cache, fetcher,
#                       classifier, confidence, engine)
#     integration/    - Full decision cycles over mocked HTTP, CLI
#     mock_data.py    - Shared stations, observations and API payloads
#
# Usage:
#   pytest                       # all tests
#   pytest tests/unit/           # unit tests only
#
# No test touches the network (see conftest.block_network).
#
# =============================================================================

__version__ = "1.0.0"
