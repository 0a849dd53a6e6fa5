"""Output layer: render ServiceResult as Rich text, quiet ids, or JSON.

Output may import from services (for the result type) but never from
commands.
"""
