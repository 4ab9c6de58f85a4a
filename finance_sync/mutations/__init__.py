from finance_sync.mutations.executor import MutationExecutor, MutationState

__all__ = ["MutationExecutor", "MutationState"]
