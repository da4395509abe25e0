"""
bmc-bootstrap - Redfish node bootstrap tooling

Discovers network-boot NICs on compute nodes through their BMCs, builds
the node inventory, triggers firmware updates and reports update status.
"""

__version__ = "1.0.0"
__author__ = "Penguin Tech Inc"
