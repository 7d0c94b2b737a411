from vax.ledger.head import ChainHead, HeadRegistry

__all__ = ["ChainHead", "HeadRegistry"]
