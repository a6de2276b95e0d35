"""Treatment course tracking: prescription status, daily assessments, weekly trends.

The domain and services packages hold the business rules and stay free of
storage details; adapters plug concrete persistence in behind the gateway
protocol.
"""
