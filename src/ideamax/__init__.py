"""ideamax: turn a product idea into a narrative plan and an MVP task hierarchy."""

__version__ = "0.1.0"
