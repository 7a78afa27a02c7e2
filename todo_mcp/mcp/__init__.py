"""
MCP (Model Context Protocol) Server Package

Tools through which a conversational agent manages the caller's todos. All
todo tools authenticate the caller and only ever touch the caller's records.
"""
