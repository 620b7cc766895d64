"""
SuiLens Web API
"""
