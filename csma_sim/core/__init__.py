"""Core components for CSMA/CD simulation.

This module contains the fundamental classes for the shared-medium simulation,
including the EventQueue, Channel, Node, BackoffPolicy and CSMASimulator classes.
"""
