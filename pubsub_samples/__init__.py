"""Broker messaging samples (MQTT-based).

Small single-purpose programs that wire callbacks into paho-mqtt:
- a Replier answering requests on `tutorial/requests` (and a Requestor for it)
- a Queue Producer / Queue Consumer pair using a durable queue `Q/tutorial`
- a Topic Subscriber printing the first message on `tutorial/topic`
  (and a Topic Publisher feeding it)
- a Confirmed Publish sending a batch to `Q/tutorial` and waiting for every ack

Run any of them with `python -m pubsub_samples.app <program> -h`.
"""
