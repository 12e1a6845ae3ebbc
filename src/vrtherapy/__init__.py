"""
VR Therapy - Exposure Therapy Session Backend

Backend services for clinics running VR exposure therapy for phobias:
therapy-session lifecycle, the token handshake with the external VR
runtime, outcome computation and doctor-facing analytics.

IMPORTANT: Session records are clinical data. Every read is scoped
to the owning doctor.
"""

__version__ = "0.1.0"
__author__ = "VR Therapy Engineering Team"
