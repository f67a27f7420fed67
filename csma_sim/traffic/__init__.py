"""Traffic generation for CSMA/CD simulation.

This module provides the Poisson arrival process that feeds packets into
the stations of the simulated LAN.
"""
