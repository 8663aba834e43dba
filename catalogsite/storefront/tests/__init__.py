"""
Tests for the storefront catalog.

Test structure:
- test_normalizer.py: product input normalisation, slugs, final price
- test_media_service.py: variant image reconciliation and multipart parsing
- test_catalog_services.py: product create/update/delete, counters, blob cleanup
- test_color_category_services.py: colour and category administration
- test_api.py: admin and public API endpoints
"""
