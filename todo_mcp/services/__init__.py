"""Domain services backed by the relational store."""
