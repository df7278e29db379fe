"""
PURPOSE: Strategy Builder package for the strategy graph engine.

Turns a plain-language strategy description into a strategy graph: the
LLM drafts it, the repair pass fixes common slips, and the validator
reports what is still wrong.
"""
