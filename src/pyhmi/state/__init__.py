"""State/store layer.

This package is the single owner of the HMI status record and the loaded
mode. Inbound messages, actions and the status loop all go through
:class:`~pyhmi.state.store.StatusStore`.
"""
