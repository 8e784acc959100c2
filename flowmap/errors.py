class FlowMapError(Exception):
    pass

class MalformedGraphError(FlowMapError):
    """Raised when a specification snapshot cannot produce a consistent graph."""
    pass

class SessionError(FlowMapError):
    pass

# Warnings are recorded as data on reports and engines, never raised.

class EmptyGraphWarning(UserWarning):
    """Graph has no screens, so there is no entry point."""
    pass

class SimulationInstabilityWarning(UserWarning):
    """Layout positions keep hitting the canvas bounds."""
    pass
