"""sshd-agent: audit and remediate an OpenSSH server configuration."""

__version__ = "1.0.0"
