"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Build prompts for place synthesis.
- Call the Groq chat-completions API and return raw text.
- Map timeouts and API errors onto the provider error taxonomy.
"""
