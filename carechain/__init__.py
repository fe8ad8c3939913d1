"""In-memory healthcare registries for immunizations, insurers, labs, claims, patients, imaging, vitals and prescriptions."""

__version__ = "0.1.0"