"""
bmc-bootstrap services.

Provides NIC classification, boot MAC discovery, firmware status inference,
guarded firmware updates and the concurrent host scheduler.
"""
