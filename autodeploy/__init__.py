"""autodeploy - GitHub webhook triggered Ansible deployments."""
__version__ = "0.1.0"
