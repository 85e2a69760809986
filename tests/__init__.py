"""Test suite for the lead-capture runtime.

This package contains tests for:
- Field and step validation
- Form definition loading
- Wizard session state and phase transitions
- Tracking events
- The wizard controller and its submission pipeline
- Attribution parameters
- Email-provider webhook ingestion (handler and HTTP endpoint)
"""
