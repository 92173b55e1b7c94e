"""Workspace assistant: conversational orchestration over workspace and connected-app tools."""

__version__ = "0.1.0"
