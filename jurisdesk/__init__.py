"""
JurisDesk backend
"""
