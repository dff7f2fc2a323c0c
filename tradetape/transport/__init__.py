"""
Transport collaborators.

Defines the transport/listener seam used by the session and a websocket
implementation with a bounded reconnect budget.
"""
