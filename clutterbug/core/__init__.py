"""Core configuration and database setup"""
