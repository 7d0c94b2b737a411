"""VAX core: canonical encoding, envelopes, chain engine, verification."""
