from booking_gate.gating.antispam import AntiSpamGate, BlockList, RateLimiter

__all__ = ["AntiSpamGate", "BlockList", "RateLimiter"]
