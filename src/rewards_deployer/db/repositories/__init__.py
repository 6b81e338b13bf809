"""
rewards_deployer.db.repositories

Data access for the run ledger: `runs.RunRepo` and `audit.AuditRepo`.
"""
