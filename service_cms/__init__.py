"""
Page CMS service.
"""
