"""btrfswatch - btrfs chunk allocation monitor and autobalancer."""

__version__ = "0.3.0"
