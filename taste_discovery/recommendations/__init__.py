"""
Recommendation pipeline.

Responsibilities:
- Run the fallback tiers (Qloo taste/similar search, generated places,
  static list) in order under an overall deadline.
- Validate and enrich candidates through the mapping provider.
- Reject irrelevant or duplicate venues.
- Attach short explanations to the top results.
"""
