"""AI learning assistant: retrieval-augmented answers over course materials"""
