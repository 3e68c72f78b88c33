"""paygate: pay-per-call request gatekeeper."""
