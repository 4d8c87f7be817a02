"""depotfetch: fetch Steam depot bundles from redundant GitHub mirrors."""
