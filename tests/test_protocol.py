from pubsub_samples.mqtt_topics import destination, queue_session_id, queue_topic, reply_inbox


def test_topic_helpers():
    vpn = "demo"
    assert destination("tutorial/topic", vpn) == "demo/tutorial/topic"
    assert destination("tutorial/requests") == "default/tutorial/requests"
    assert reply_inbox("requestor-1", vpn) == "demo/_inbox/requestor-1"
    assert queue_topic("Q/tutorial", vpn) == "demo/Q/tutorial"


def test_queue_session_id_is_stable_and_flat():
    assert queue_session_id("Q/tutorial", "demo") == "queue-demo-Q_tutorial"
    assert queue_session_id("Q/tutorial", "demo") == queue_session_id("Q/tutorial", "demo")
    assert queue_session_id("Q/tutorial", "other") != queue_session_id("Q/tutorial", "demo")
