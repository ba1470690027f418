"""Run-scoped pieces around the stage loop: state, cleanup, archiving, reporting."""
