# central_dispatch.py
#
# This file is part of pairsys.
#
#    Copyright (c) 2019 and later, Jens Koch and Peter Groszkowski
#    All rights reserved.
#
#    This source code is licensed under the BSD-style license found in the
#    LICENSE file in the root directory of this source tree.
############################################################################
"""
Change notification between the objects of a calculation. A `BasisIndex` whose
membership changes reports BASISINDEX_UPDATE; systems built on that basis drop their
coupling structure and symmetry partition and report SYSTEM_UPDATE, upon which
parameter sweeps and sweep caches discard results that no longer belong to the basis.
"""

import logging
import warnings
import weakref

from typing import Dict, List

import pairsys.settings as settings

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------
# To enable logging output, uncomment the following setting:
# LOGGER.setLevel(logging.DEBUG)
# ---------------------------------------------------------------


EVENTS: List[str] = [
    "BASISINDEX_UPDATE",
    "SYSTEM_UPDATE",
]


class CentralDispatch:
    """Registry of the clients listening for each event in `EVENTS`.

    Clients are held through weak references: registering for an event does not
    keep a system, sweep or cache alive, and expired clients drop out of the
    registry on their own.
    """

    def __init__(self) -> None:
        # event -> {client: weak reference to client.receive}
        self.clients_dict: Dict[str, weakref.WeakKeyDictionary] = {
            event: weakref.WeakKeyDictionary() for event in EVENTS
        }

    def get_clients_dict(self, event: str) -> weakref.WeakKeyDictionary:
        """Clients registered for `event`, mapped to their `receive` methods.

        Raises
        ------
        KeyError
            if `event` is not one of `EVENTS`
        """
        return self.clients_dict[event]

    def register(self, event: str, who: "DispatchClient") -> None:
        """Subscribes `who.receive` to `event`. Registering twice is harmless."""
        LOGGER.debug(
            "Registering {} for {}. welcome.".format(type(who).__name__, event)
        )
        self.get_clients_dict(event)[who] = weakref.WeakMethod(who.receive)

    def unregister_object(self, who: "DispatchClient") -> None:
        """Removes `who` from all events."""
        for clients in self.clients_dict.values():
            clients.pop(who, None)

    def _dispatch(self, event: str, sender: "DispatchClient", **kwargs) -> None:
        # receivers may broadcast in turn and thereby register new clients
        for client, receive_ref in list(self.get_clients_dict(event).items()):
            LOGGER.debug(
                "Central dispatch calling {} about {}.".format(
                    type(client).__name__, event
                )
            )
            receive = receive_ref()
            if receive is not None:
                receive(event, sender=sender, **kwargs)

    def listen(self, caller: "DispatchClient", event: str, **kwargs) -> None:
        """Forwards `event` reported by `caller` to all registered clients, unless
        dispatch is switched off through `settings.DISPATCH_ENABLED`."""
        if settings.DISPATCH_ENABLED:
            self._dispatch(event, sender=caller, **kwargs)


CENTRAL_DISPATCH = CentralDispatch()


class DispatchClient:
    """Mixin of objects that report or react to basis and system changes.
    Subclasses register themselves for the events they care about and override
    `receive`."""

    def broadcast(self, event: str, **kwargs) -> None:
        """Reports `event` to all clients registered for it."""
        if settings.DISPATCH_ENABLED:
            LOGGER.debug("Client {} broadcasting {}".format(type(self).__name__, event))
        CENTRAL_DISPATCH.listen(self, event, **kwargs)

    def receive(self, event: str, sender: "DispatchClient", **kwargs) -> None:
        """Reacts to `event` reported by `sender`.

        Parameters
        ----------
        event:
            event name from `EVENTS`
        sender:
            object whose change triggered the event, e.g. the modified `BasisIndex`
        **kwargs
            event details passed on by the sender
        """
        warnings.warn("`receive()` not implemented for {}".format(self))

    def __del__(self) -> None:
        # module globals may already be gone at interpreter shutdown
        if logging:
            LOGGER.debug("Unregistering {}. au revoir.".format(type(self).__name__))
        if CENTRAL_DISPATCH:
            CENTRAL_DISPATCH.unregister_object(self)
