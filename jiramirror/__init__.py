"""Jira Cloud mirror service"""
