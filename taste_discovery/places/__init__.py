"""
Place reference resolution.

Responsibilities:
- Parse pasted Google Maps links (expanding short links) into a place id
  or a search query.
- Autocomplete partial input, biased toward the target city.
- Look up details for a known place id.
"""
