"""
Background jobs for the fusion stability pipeline.

Jobs:
- run_stability_pipeline: Run baseline, forecast, risk engine and calibration stages
"""
