from stack_manager.envfile import load_record, save_record


def test_load_record_missing_file_is_empty(tmp_path):
    assert load_record(tmp_path / "absent.env") == {}


def test_load_record_skips_comments_and_blank_lines(tmp_path):
    path = tmp_path / "cluster-config.env"
    path.write_text(
        "# generated\n"
        "OCI_COMPARTMENT_ID=ocid1.compartment.oc1..aaa\n"
        "\n"
        "OCI_VCN_OCID=ocid1.vcn.oc1..bbb\n",
        encoding="utf-8",
    )

    record = load_record(path)

    assert list(record) == ["OCI_COMPARTMENT_ID", "OCI_VCN_OCID"]
    assert record["OCI_VCN_OCID"] == "ocid1.vcn.oc1..bbb"


def test_save_record_preserves_key_order(tmp_path):
    path = tmp_path / "cluster-config.env"

    save_record(path, {"B": "2", "A": "1", "CLUSTER_ID": "cluster-123"})

    assert path.read_text(encoding="utf-8") == "B=2\nA=1\nCLUSTER_ID=cluster-123\n"
    assert load_record(path) == {"B": "2", "A": "1", "CLUSTER_ID": "cluster-123"}


def test_values_that_need_quoting_round_trip(tmp_path):
    path = tmp_path / "cluster-config.env"
    record = {
        "CLUSTER_ID": "ocid1.cluster.oc1..plain",
        "NOTE": "build #42",
        "QUOTED": "'single' and \"double\"",
        "PADDED": "  spaced  ",
        "WINDOWS_PATH": "C:\\oci\\config #1",
    }

    save_record(path, record)

    assert path.read_text(encoding="utf-8").splitlines()[0] == "CLUSTER_ID=ocid1.cluster.oc1..plain"
    assert load_record(path) == record
