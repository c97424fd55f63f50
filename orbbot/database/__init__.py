"""Database package for ORB Automation Bot"""
