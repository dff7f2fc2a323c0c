"""
Display collaborators that render the ledger.
"""
