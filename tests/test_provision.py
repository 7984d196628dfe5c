import pytest

from stack_manager.config import OkeConfig
from stack_manager.envfile import load_record
from stack_manager.errors import ConfigError, ProvisionError
from stack_manager.provision import provision_oke_cluster, run_provisioning

BASE_RECORD = (
    "OCI_COMPARTMENT_ID=ocid1.compartment.oc1..comp\n"
    "OCI_VCN_OCID=ocid1.vcn.oc1..vcn\n"
    "OCI_PUBLIC_LB_SUBNET_OCID=ocid1.subnet.oc1..lb\n"
    "OCI_WORKER_SUBNET_OCID=ocid1.subnet.oc1..workers\n"
)


class FakeOci:
    def __init__(self, cluster_id="cluster-123", node_pool_id="nodepool-456", fail_node_pool=False):
        self.cluster_id = cluster_id
        self.node_pool_id = node_pool_id
        self.fail_node_pool = fail_node_pool
        self.calls = []

    def create_cluster(self, **kwargs):
        self.calls.append(("cluster", kwargs))
        return self.cluster_id

    def create_node_pool(self, **kwargs):
        self.calls.append(("node-pool", kwargs))
        if self.fail_node_pool:
            raise ProvisionError("oci ce node-pool create failed: LimitExceeded")
        return self.node_pool_id


def test_provisioning_records_ids_in_order(tmp_path):
    config_file = tmp_path / "cluster-config.env"
    config_file.write_text(BASE_RECORD, encoding="utf-8")
    oci = FakeOci()

    run_provisioning(config_file, OkeConfig(), oci)

    record = load_record(config_file)
    assert list(record)[-2:] == ["CLUSTER_ID", "NODE_POOL_ID"]
    assert record["CLUSTER_ID"] == "cluster-123"
    assert record["NODE_POOL_ID"] == "nodepool-456"
    assert oci.calls[1][1]["cluster_id"] == "cluster-123"
    assert oci.calls[1][1]["subnet_id"] == "ocid1.subnet.oc1..workers"
    assert oci.calls[1][1]["size"] == 3


def test_existing_cluster_id_is_reused(tmp_path):
    config_file = tmp_path / "cluster-config.env"
    config_file.write_text(BASE_RECORD + "CLUSTER_ID=cluster-existing\n", encoding="utf-8")
    oci = FakeOci()

    run_provisioning(config_file, OkeConfig(), oci)

    assert [call[0] for call in oci.calls] == ["node-pool"]
    assert load_record(config_file)["CLUSTER_ID"] == "cluster-existing"


def test_cluster_id_is_saved_when_node_pool_fails(tmp_path):
    config_file = tmp_path / "cluster-config.env"
    config_file.write_text(BASE_RECORD, encoding="utf-8")

    with pytest.raises(ProvisionError):
        run_provisioning(config_file, OkeConfig(), FakeOci(fail_node_pool=True))

    record = load_record(config_file)
    assert record["CLUSTER_ID"] == "cluster-123"
    assert "NODE_POOL_ID" not in record


def test_missing_required_key_is_a_config_error():
    with pytest.raises(ConfigError, match="OCI_WORKER_SUBNET_OCID"):
        provision_oke_cluster(
            {"OCI_COMPARTMENT_ID": "c", "OCI_VCN_OCID": "v", "OCI_PUBLIC_LB_SUBNET_OCID": "l"},
            OkeConfig(),
            FakeOci(),
        )


def test_missing_config_file_is_a_config_error(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        run_provisioning(tmp_path / "absent.env", OkeConfig(), FakeOci())
