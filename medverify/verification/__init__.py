"""
Medical professional identity verification: document submission and admin review.
"""
