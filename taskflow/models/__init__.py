"""Models package - Pydantic models for API request/response"""
