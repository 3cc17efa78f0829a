"""
Test suite for the Gemini client.

Run all tests from project root:
    pytest
    pytest tests/
    pytest tests/test_websocket/

Run specific test file:
    pytest tests/test_rest.py
    pytest tests/test_signing/test_signer.py

Run with coverage:
    pytest --cov=gemini_client --cov-report=html
"""
