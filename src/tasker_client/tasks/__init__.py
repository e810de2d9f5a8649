"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Submission, Bid, TaskSnapshot)
- lifecycle.py: pure (snapshot, actor) -> allowed actions engine
- task_api.py: lifecycle service that runs actions and re-fetches snapshots
- work_submission.py: submission draft + upload-then-submit flow
- disputes.py: dispute reports with optional evidence upload
"""
