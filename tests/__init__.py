"""
Form Agent Tests

Run all tests:
    pytest tests/ -v

Run specific test file:
    pytest tests/test_forms.py -v

Run with coverage:
    pytest tests/ -v --cov=form_agent

None of the tests launch Chrome or call an LLM API; browsers, pages and
elements are replaced by AsyncMock doubles from tests/helpers.py.
"""
