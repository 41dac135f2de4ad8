"""
Core domain types, storage backends and worker orchestration.
"""
