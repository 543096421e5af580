"""HiveDeploy CLI commands"""
