"""
Runtime Orchestration Module

WHAT: Runtime subsystem keeping a code knowledge graph and a dual memory store in sync
WHERE: mnemos/runtime/ - orchestration layer above config/embedders
WHO: Development tooling streaming activity (generated code, bug fixes, team events)
TIME: Events drained in batches every processing interval (default 1s)

Memory Architecture:
- knowledge graph: functions/classes/modules/concepts extracted from activity
- system1: fast pattern memories (past interactions, code/team patterns)
- system2: deliberate reasoning state (reasoning traces, current mode)
- event pipeline: the only writer keeping both in step
"""

__all__ = ["memory"]
