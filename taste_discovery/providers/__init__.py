"""
HTTP provider clients.

Responsibilities:
- Query the Qloo taste API with ordered search strategies.
- Query Google Maps for text search, geocoding, autocomplete and details.
- Enforce a per-call time budget and map provider failures onto the
  service's error taxonomy.
"""
