"""
Domain adapters for the refinement engine.

Each tool supplies a task description, a processor that turns the model's
result text into a domain value and a validator for that value.
"""
