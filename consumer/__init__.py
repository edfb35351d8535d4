"""
Prime worker.

Polls the inbound queue, tests each number with Miller-Rabin and posts the
verdict on the outbound queue.
"""
