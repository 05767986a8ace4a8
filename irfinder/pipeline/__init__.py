"""High level code for driving an IRFinder run.

This structures processing steps into the following modules:

  - run_info.py: Validate the command line into a run configuration.
  - reference.py: Check the reference directory layout for a mode.
  - assemble.py: Build and run the streaming analysis pipeline.
    - graph.py: Stage and endpoint descriptions of the pipeline.
    - sync.py: Wait for the detached sort stage.
  - buildref.py: Hand reference construction to the reference builder.
  - report.py: Run banner and final warnings check.
  - main.py: Tie the steps together for one invocation.
"""
