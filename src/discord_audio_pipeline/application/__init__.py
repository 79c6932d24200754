"""
Application Layer

Port interfaces that the infrastructure adapters implement and the entry
points consume.

Structure:
- interfaces/: Port interfaces for infrastructure adapters
"""
